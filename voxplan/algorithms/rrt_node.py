from dataclasses import dataclass
from typing import Optional

from voxplan.data_models import Point3D


@dataclass(frozen=True)
class TreeNode:
    position: Point3D
    index: int
    parent: Optional[int] = None
