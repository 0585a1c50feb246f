import os
import typing as t

from voxplan.algorithms.bezier_spline import BezierSpline
from voxplan.algorithms.gain import identity
from voxplan.algorithms.nbv import NBVSearch
from voxplan.algorithms.rrt import RRTConfig, RRTTree
from voxplan.data_models import (
    NBVRequestModel,
    NBVResponseModel,
    PathRequestModel,
    PathResponseModel,
    Point3D,
    ScenarioYamlModel,
    scenario_from_yaml,
)
from voxplan.exceptions import EnvironmentUnavailable
from voxplan.utils import utils
from voxplan.world.occupancy_map import OccupancyMap
from voxplan.world.voxel_occupancy_grid import VoxelOccupancyGrid

MapProvider = t.Callable[[], t.Optional[OccupancyMap]]


class PlannerService:
    """
    Request handlers for path planning, next-best-view selection and smoothing. The map
    is fetched from `map_provider` afresh for every request and only borrowed for the
    duration of that request.
    """

    def __init__(
        self,
        map_provider: MapProvider,
        logger: utils.PlannerLogger | None = None,
        distance_transform: t.Callable[[float], float] = identity,
    ):
        self.map_provider = map_provider
        self.logger = logger if logger is not None else utils.PlannerLogger()
        self.distance_transform = distance_transform

    def _fetch_map(self) -> OccupancyMap:
        occupancy_map = self.map_provider()
        if occupancy_map is None:
            self.logger.append(utils.PlannerLog("Could not fetch occupancy map", 0))
            raise EnvironmentUnavailable("Map provider returned no occupancy map")
        return occupancy_map

    def find_path(self, request: PathRequestModel) -> PathResponseModel:
        config = RRTConfig.from_request(request)
        tree = RRTTree.build(config, logger=self.logger)
        tree.assign_environment(self._fetch_map())

        result = tree.run()
        return PathResponseModel(success=result.success, waypoints=result.waypoints)

    def next_best_view(self, request: NBVRequestModel) -> NBVResponseModel:
        self.logger.append(utils.PlannerLog("nbv request received", 0))
        search = NBVSearch.from_request(
            request,
            occupancy_map=None,
            logger=self.logger,
            distance_transform=self.distance_transform,
        )
        search.tree.assign_environment(self._fetch_map())

        result = search.run()
        return NBVResponseModel(
            found_sufficient_gain=result.found_sufficient_gain,
            waypoints=result.waypoints,
            best_gain=result.best_gain,
        )

    def smooth(
        self,
        waypoints: t.Sequence[t.Sequence[float]],
        resolution: int,
        spacing: float | None = None,
    ) -> t.List[Point3D]:
        """
        Smooths waypoints into a Bezier curve. Returns the raw samples, or points at equal
        arc-length `spacing` when one is given.
        """
        spline = BezierSpline.construct(waypoints, resolution)
        if spacing is None:
            return spline.raw_samples()
        return spline.sample_by_distance(spacing)


class ScenarioRunner:
    """A `PlannerService` bound to the map and requests of a YAML scenario file."""

    def __init__(
        self,
        *,
        scenario: ScenarioYamlModel,
        occupancy_map: VoxelOccupancyGrid,
        logger: utils.PlannerLogger,
    ):
        self.scenario = scenario
        self.occupancy_map = occupancy_map
        self.logger = logger
        self.service = PlannerService(lambda: self.occupancy_map, logger=logger)


def create_service_from_file(
    scenario_file_path: str, logger: utils.PlannerLogger | None = None
) -> ScenarioRunner:
    scenario = scenario_from_yaml(scenario_file_path)
    occupancy_map = VoxelOccupancyGrid.from_config(
        scenario.map, base_dir=os.path.dirname(os.path.abspath(scenario_file_path))
    )
    if logger is None:
        logger = utils.PlannerLogger()
    logger.append(utils.PlannerLog("Scenario file successfully loaded", 0))
    return ScenarioRunner(scenario=scenario, occupancy_map=occupancy_map, logger=logger)
