import math
import typing as t

import numpy as np
import numpy.typing as npt

from voxplan.data_models import Bounds3D, FoVConfigModel, Point3D
from voxplan.exceptions import ConfigurationError
from voxplan.utils import utils


class DepthRange(t.NamedTuple):
    min: float
    max: float


class FoV:
    """
    A camera frustum. The camera looks along the local x axis; its orientation is a yaw about
    the world z axis followed by a pitch about the rotated y axis, so a positive pitch looks
    down. Angles are full openings, in radians.
    """

    def __init__(
        self,
        *,
        position: t.Sequence[float],
        yaw: float,
        pitch: float,
        horizontal: float,
        vertical: float,
        depth_range: DepthRange,
        target: t.Sequence[float],
    ):
        self.check_parameters(horizontal, vertical, depth_range)
        self.position = utils.to_point(position)
        self.yaw = yaw
        self.pitch = pitch
        self.horizontal = horizontal
        self.vertical = vertical
        self.depth_range = depth_range
        self.target = utils.to_point(target)
        self._rotation = self._compute_rotation(yaw, pitch)

    @staticmethod
    def check_parameters(horizontal: float, vertical: float, depth_range: DepthRange):
        if not 0 < horizontal < math.pi or not 0 < vertical < math.pi:
            raise ConfigurationError(
                "FoV angles must lie in (0, 180) degrees, got horizontal={}, vertical={}".format(
                    math.degrees(horizontal), math.degrees(vertical)
                )
            )
        if depth_range.min < 0 or depth_range.max < depth_range.min:
            raise ConfigurationError(
                "Invalid FoV depth range {}".format(tuple(depth_range))
            )

    @classmethod
    def validate_config(cls, config: FoVConfigModel):
        cls.check_parameters(
            math.radians(config.horizontal_angle),
            math.radians(config.vertical_angle),
            DepthRange(config.depth_min, config.depth_max),
        )

    @classmethod
    def looking_at(
        cls,
        position: t.Sequence[float],
        target: t.Sequence[float],
        config: FoVConfigModel,
    ) -> "FoV":
        """Builds a FoV at `position` whose yaw faces `target` in the horizontal plane."""
        direction = (target[0] - position[0], target[1] - position[1])
        return cls(
            position=position,
            yaw=utils.yaw_from_direction(direction),
            pitch=math.radians(config.pitch_angle),
            horizontal=math.radians(config.horizontal_angle),
            vertical=math.radians(config.vertical_angle),
            depth_range=DepthRange(config.depth_min, config.depth_max),
            target=target,
        )

    @staticmethod
    def _compute_rotation(yaw: float, pitch: float) -> npt.NDArray[np.float64]:
        cy, sy = math.cos(yaw), math.sin(yaw)
        cp, sp = math.cos(pitch), math.sin(pitch)
        rz = np.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]])
        ry = np.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]])
        return rz @ ry

    @property
    def rotation(self) -> npt.NDArray[np.float64]:
        return self._rotation.copy()

    @property
    def forward(self) -> npt.NDArray[np.float64]:
        return self._rotation[:, 0].copy()

    def contains(self, points: npt.ArrayLike) -> npt.NDArray[np.bool_]:
        """Vectorized test of which of the (N, 3) `points` lie inside the frustum."""
        pts = np.atleast_2d(np.asarray(points, dtype=np.float64))
        local = (pts - np.asarray(self.position)) @ self._rotation
        depth = local[:, 0]
        half_width = depth * math.tan(self.horizontal / 2)
        half_height = depth * math.tan(self.vertical / 2)
        return (
            (depth >= self.depth_range.min)
            & (depth <= self.depth_range.max)
            & (np.abs(local[:, 1]) <= half_width)
            & (np.abs(local[:, 2]) <= half_height)
        )

    def corners(self) -> npt.NDArray[np.float64]:
        result = []
        tan_h = math.tan(self.horizontal / 2)
        tan_v = math.tan(self.vertical / 2)
        for depth in self.depth_range:
            for sy in (-1.0, 1.0):
                for sz in (-1.0, 1.0):
                    local = np.array([depth, sy * depth * tan_h, sz * depth * tan_v])
                    result.append(np.asarray(self.position) + self._rotation @ local)
        return np.array(result)

    def bounding_box(self) -> Bounds3D:
        corners = self.corners()
        return (
            utils.to_point(corners.min(axis=0)),
            utils.to_point(corners.max(axis=0)),
        )

    def to_dict(self) -> t.Dict[str, t.Any]:
        return {
            "position": list(self.position),
            "yaw_degrees": math.degrees(self.yaw),
            "pitch_degrees": math.degrees(self.pitch),
            "horizontal_degrees": math.degrees(self.horizontal),
            "vertical_degrees": math.degrees(self.vertical),
            "depth_range": list(self.depth_range),
            "target": list(self.target),
        }

    def __str__(self):
        return "FoV(position={}, yaw={:.1f}deg, pitch={:.1f}deg)".format(
            tuple(round(c, 3) for c in self.position),
            math.degrees(self.yaw),
            math.degrees(self.pitch),
        )
