import typing as t

from voxplan.data_models import VoxelState
from voxplan.exceptions import EnvironmentUnavailable
from voxplan.world.occupancy_map import OccupancyMap


class CollisionChecker:
    """
    Validates tree edges against a borrowed occupancy map. Occupied space always blocks;
    unknown space blocks unless `treat_unknown_as_free` is set.
    """

    def __init__(
        self,
        occupancy_map: OccupancyMap | None = None,
        treat_unknown_as_free: bool = False,
    ):
        self.occupancy_map = occupancy_map
        self.treat_unknown_as_free = treat_unknown_as_free
        self.n_checks = 0
        self.n_rejections = 0

    def is_passable(self, state: VoxelState) -> bool:
        if state == VoxelState.FREE:
            return True
        if state == VoxelState.UNKNOWN:
            return self.treat_unknown_as_free
        return False

    def is_segment_free(self, a: t.Sequence[float], b: t.Sequence[float]) -> bool:
        if self.occupancy_map is None:
            raise EnvironmentUnavailable("No occupancy map assigned to collision checker")
        self.n_checks += 1
        free = self.is_passable(self.occupancy_map.classify(a, b))
        if not free:
            self.n_rejections += 1
        return free

    def is_point_free(self, point: t.Sequence[float]) -> bool:
        if self.occupancy_map is None:
            raise EnvironmentUnavailable("No occupancy map assigned to collision checker")
        return self.is_passable(self.occupancy_map.classify(point))
