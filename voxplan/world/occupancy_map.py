import typing as t

from voxplan.data_models import VoxelCounts, VoxelState

if t.TYPE_CHECKING:
    from voxplan.world.fov import FoV


@t.runtime_checkable
class OccupancyMap(t.Protocol):
    """
    The query capability planners need from a volumetric map. Implementations are borrowed
    for the duration of one request and are never mutated by the planners.
    """

    def classify(
        self, start: t.Sequence[float], end: t.Sequence[float] | None = None
    ) -> VoxelState:
        """
        Classifies a point, or the segment `start` -> `end` when `end` is given. A segment is
        OCCUPIED if any voxel it crosses is occupied, else UNKNOWN if any is unknown.
        """
        ...

    def frustum_classify(self, fov: "FoV") -> VoxelCounts:
        """Counts the free, occupied and unknown voxels inside the frustum of `fov`."""
        ...
