import time
import typing as t
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from voxplan.algorithms.collision import CollisionChecker
from voxplan.algorithms.rrt_node import TreeNode
from voxplan.algorithms.sampling import SamplingStrategy, bounds_around
from voxplan.data_models import Bounds3D, NBVRequestModel, PathRequestModel, Point3D
from voxplan.exceptions import (
    ConfigurationError,
    EnvironmentUnavailable,
    SearchExhausted,
)
from voxplan.utils import utils
from voxplan.world.occupancy_map import OccupancyMap

NodeCreatedListener = t.Callable[[TreeNode, TreeNode], None]
"""Called with (parent, new_node) each time the tree grows."""


def _point_from_list(values: t.Sequence[float], name: str) -> Point3D:
    if len(values) != 3:
        raise ConfigurationError(
            "{} must have 3 coordinates, got {}".format(name, list(values))
        )
    return utils.to_point(values)


@dataclass
class RRTConfig:
    start: Point3D
    goal: Point3D
    max_iterations: int = 1000
    goal_bias: float = 0.1
    probability_of_full_path_test: float = 0.0
    goal_tolerance: float = 0.5
    step_size: float = 1.0
    seed: int | None = None
    bounds: Bounds3D | None = None
    sampling_margin: float = 5.0
    treat_unknown_as_free: bool = False

    def validate(self):
        if not self.step_size > 0:
            raise ConfigurationError(
                "step_size must be positive, got {}".format(self.step_size)
            )
        if not self.goal_tolerance >= 0:
            raise ConfigurationError(
                "goal_tolerance must be non-negative, got {}".format(self.goal_tolerance)
            )
        if not 0.0 <= self.goal_bias <= 1.0:
            raise ConfigurationError(
                "goal_bias must lie in [0, 1], got {}".format(self.goal_bias)
            )
        if not 0.0 <= self.probability_of_full_path_test <= 1.0:
            raise ConfigurationError(
                "probability_of_full_path_test must lie in [0, 1], got {}".format(
                    self.probability_of_full_path_test
                )
            )
        if self.max_iterations < 0:
            raise ConfigurationError(
                "max_iterations must be non-negative, got {}".format(
                    self.max_iterations
                )
            )
        if not self.sampling_margin >= 0:
            raise ConfigurationError(
                "sampling_margin must be non-negative, got {}".format(
                    self.sampling_margin
                )
            )
        if self.bounds is not None and any(
            lo > hi for lo, hi in zip(self.bounds[0], self.bounds[1])
        ):
            raise ConfigurationError("Invalid sampling bounds {}".format(self.bounds))

    def planning_bounds(self) -> Bounds3D:
        if self.bounds is not None:
            return self.bounds
        return bounds_around([self.start, self.goal], self.sampling_margin)

    @classmethod
    def from_request(
        cls, request: t.Union[PathRequestModel, NBVRequestModel]
    ) -> "RRTConfig":
        bounds = None
        if request.bounds is not None:
            if len(request.bounds) != 2:
                raise ConfigurationError(
                    "bounds must be [[xmin, ymin, zmin], [xmax, ymax, zmax]]"
                )
            bounds = (
                _point_from_list(request.bounds[0], "bounds[0]"),
                _point_from_list(request.bounds[1], "bounds[1]"),
            )

        if isinstance(request, NBVRequestModel):
            # An NBV search ends on gain, never on reaching the target.
            return cls(
                start=_point_from_list(request.start, "start"),
                goal=_point_from_list(request.target, "target"),
                max_iterations=request.max_iterations,
                goal_bias=request.goal_bias,
                probability_of_full_path_test=0.0,
                goal_tolerance=0.0,
                step_size=request.step_size,
                seed=request.seed,
                bounds=bounds,
                sampling_margin=request.sampling_margin,
                treat_unknown_as_free=request.treat_unknown_as_free,
            )

        return cls(
            start=_point_from_list(request.start, "start"),
            goal=_point_from_list(request.goal, "goal"),
            max_iterations=request.max_iterations,
            goal_bias=request.goal_bias,
            probability_of_full_path_test=request.probability_of_full_path_test,
            goal_tolerance=request.goal_tolerance,
            step_size=request.step_size,
            seed=request.seed,
            bounds=bounds,
            sampling_margin=request.sampling_margin,
            treat_unknown_as_free=request.treat_unknown_as_free,
        )


class PlanningResult:
    """Outcome of `RRTTree.run`. On exhaustion `exhausted` is set and `waypoints` is empty."""

    def __init__(
        self,
        *,
        success: bool,
        waypoints: t.List[Point3D],
        iterations: int,
        exhausted: SearchExhausted | None = None,
        elapsed_time: float | None = None,
    ):
        self.success = success
        self.waypoints = waypoints
        self.iterations = iterations
        self.exhausted = exhausted
        self.elapsed_time = elapsed_time

    def __str__(self):
        if self.success:
            return "Path found with {} waypoints after {} iterations".format(
                len(self.waypoints), self.iterations
            )
        return str(self.exhausted)


class RRTTree:
    """
    A goal-biased RRT over a borrowed occupancy map. Nodes live in an append-only arena
    and are addressed by their creation index; the root has index 0.

    Growth is exposed one iteration at a time through `grow1` so that callers can
    interleave their own work (scoring, early termination) between steps. `run` is the
    plain path-planning loop built on top of it.
    """

    def __init__(
        self,
        config: RRTConfig,
        logger: utils.PlannerLogger | None = None,
    ):
        config.validate()
        self.config = config
        self.logger = logger if logger is not None else utils.PlannerLogger()
        self.rng = np.random.default_rng(config.seed)
        self.sampler = SamplingStrategy(
            goal=config.goal,
            goal_bias=config.goal_bias,
            bounds=config.planning_bounds(),
            rng=self.rng,
        )
        self.collision_checker = CollisionChecker(
            treat_unknown_as_free=config.treat_unknown_as_free
        )
        self.occupancy_map: OccupancyMap | None = None
        self.iterations = 0
        self.elapsed_time: float | None = None

        self._nodes: t.List[TreeNode] = []
        self._positions: npt.NDArray[np.float64] = np.zeros((64, 3))
        self._listeners: t.List[NodeCreatedListener] = []
        self._goal_node: TreeNode | None = None

        root = self._insert(config.start, parent=None)
        if self._is_near_goal(root):
            self._goal_node = root

    @classmethod
    def build(
        cls, config: RRTConfig, logger: utils.PlannerLogger | None = None
    ) -> "RRTTree":
        return cls(config, logger=logger)

    @property
    def root(self) -> TreeNode:
        return self._nodes[0]

    @property
    def nodes(self) -> t.Sequence[TreeNode]:
        return tuple(self._nodes)

    @property
    def size(self) -> int:
        return len(self._nodes)

    @property
    def newest_node(self) -> TreeNode:
        return self._nodes[-1]

    @property
    def goal_node(self) -> TreeNode | None:
        return self._goal_node

    @property
    def succeeded(self) -> bool:
        return self._goal_node is not None

    def assign_environment(self, occupancy_map: OccupancyMap | None):
        self.occupancy_map = occupancy_map
        self.collision_checker.occupancy_map = occupancy_map

    def add_node_created_listener(self, listener: NodeCreatedListener):
        self._listeners.append(listener)

    def _insert(self, position: t.Sequence[float], parent: int | None) -> TreeNode:
        node = TreeNode(
            position=utils.to_point(position), index=len(self._nodes), parent=parent
        )
        if node.index >= len(self._positions):
            self._positions = np.concatenate(
                [self._positions, np.zeros_like(self._positions)]
            )
        self._positions[node.index] = node.position
        self._nodes.append(node)
        return node

    def _add_node(self, position: t.Sequence[float], parent: TreeNode) -> TreeNode:
        node = self._insert(position, parent.index)
        for listener in self._listeners:
            listener(parent, node)
        return node

    def _is_near_goal(self, node: TreeNode) -> bool:
        return (
            utils.euclidean_distance(node.position, self.config.goal)
            <= self.config.goal_tolerance
        )

    def nearest_node(self, point: t.Sequence[float]) -> TreeNode:
        """Linear scan over the arena; the lowest index wins ties."""
        positions = self._positions[: len(self._nodes)]
        dists = np.linalg.norm(positions - np.asarray(point, dtype=np.float64), axis=1)
        return self._nodes[int(np.argmin(dists))]

    def grow1(self) -> TreeNode | None:
        """
        Runs one growth iteration and returns the node it created, or None when the
        iteration was rejected (collision, or a sample already in the tree).
        """
        if self.occupancy_map is None:
            raise EnvironmentUnavailable("No occupancy map assigned to the tree")

        self.iterations += 1
        sample = self.sampler.sample()
        nearest = self.nearest_node(sample)
        candidate = utils.step_towards(nearest.position, sample, self.config.step_size)
        if candidate == nearest.position:
            return None

        if not self.collision_checker.is_segment_free(nearest.position, candidate):
            return None

        node = self._add_node(candidate, nearest)
        if self._goal_node is not None:
            return node

        if self._is_near_goal(node):
            self._goal_node = node
        elif (
            self.config.probability_of_full_path_test > 0
            and self.rng.random() < self.config.probability_of_full_path_test
            and self.collision_checker.is_segment_free(node.position, self.config.goal)
        ):
            self._goal_node = self._add_node(self.config.goal, node)
            self.logger.append(
                utils.PlannerLog(
                    "Direct segment from node {} to goal is free".format(node.index),
                    self.iterations,
                )
            )
        return node

    def run(self) -> PlanningResult:
        if self.occupancy_map is None:
            raise EnvironmentUnavailable("No occupancy map assigned to the tree")

        t0 = time.time()
        self.logger.append(
            utils.PlannerLog("Running rrt: {}".format(self), self.iterations)
        )
        while self._goal_node is None and self.iterations < self.config.max_iterations:
            self.grow1()
        self.elapsed_time = time.time() - t0

        if self._goal_node is not None:
            waypoints = self.waypoints_from_node(self._goal_node.index)
            self.logger.append(
                utils.PlannerLog(
                    "Path found with {} waypoints".format(len(waypoints)),
                    self.iterations,
                )
            )
            return PlanningResult(
                success=True,
                waypoints=waypoints,
                iterations=self.iterations,
                elapsed_time=self.elapsed_time,
            )

        exhausted = SearchExhausted(self.iterations)
        self.logger.append(utils.PlannerLog(str(exhausted), self.iterations))
        return PlanningResult(
            success=False,
            waypoints=[],
            iterations=self.iterations,
            exhausted=exhausted,
            elapsed_time=self.elapsed_time,
        )

    def waypoints_from_node(self, index: int) -> t.List[Point3D]:
        """Backtracks parent links from node `index` to the root; returned root first."""
        if not 0 <= index < len(self._nodes):
            raise IndexError("No node with index {}".format(index))
        path = []
        node: TreeNode | None = self._nodes[index]
        while node is not None:
            path.append(node.position)
            node = self._nodes[node.parent] if node.parent is not None else None
        return path[::-1]

    def waypoints_from_newest_node(self) -> t.List[Point3D]:
        return self.waypoints_from_node(self.newest_node.index)

    def get_waypoints_from_nearest_node_to(
        self, point: t.Sequence[float]
    ) -> t.List[Point3D]:
        return self.waypoints_from_node(self.nearest_node(point).index)

    def __str__(self):
        c = self.config
        return (
            "RRT(start={}, goal={}, max_iterations={}, goal_bias={}, "
            "probability_of_full_path_test={}, goal_tolerance={}, step_size={}, "
            "nodes={})".format(
                tuple(c.start),
                tuple(c.goal),
                c.max_iterations,
                c.goal_bias,
                c.probability_of_full_path_test,
                c.goal_tolerance,
                c.step_size,
                len(self._nodes),
            )
        )
