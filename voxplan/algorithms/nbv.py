import typing as t

from voxplan.algorithms.gain import GainWeights, NBVGainEvaluator, identity
from voxplan.algorithms.rrt import RRTConfig, RRTTree
from voxplan.algorithms.rrt_node import TreeNode
from voxplan.data_models import FoVConfigModel, NBVRequestModel, Point3D
from voxplan.exceptions import EnvironmentUnavailable, SearchExhausted
from voxplan.utils import utils
from voxplan.world.fov import FoV
from voxplan.world.occupancy_map import OccupancyMap


class NBVResult:
    def __init__(
        self,
        *,
        found_sufficient_gain: bool,
        waypoints: t.List[Point3D],
        best_gain: float | None,
        best_node: TreeNode | None,
        iterations: int,
        exhausted: SearchExhausted | None = None,
    ):
        self.found_sufficient_gain = found_sufficient_gain
        self.waypoints = waypoints
        self.best_gain = best_gain
        """Highest score seen, None if the tree never grew."""
        self.best_node = best_node
        self.iterations = iterations
        self.exhausted = exhausted
        """Set when the budget ran out and the best-effort fallback path was used."""


class NBVSearch:
    """
    Next-best-view search. Grows an RRT toward the target and scores a FoV at every new
    node, stopping on the first score above `gain_of_interest_threshold`. If none is found
    within the iteration budget the path to the best-scoring node is returned instead.
    """

    def __init__(
        self,
        *,
        tree: RRTTree,
        target: t.Sequence[float],
        fov_config: FoVConfigModel,
        weights: GainWeights,
        gain_of_interest_threshold: float,
        evaluator: NBVGainEvaluator | None = None,
    ):
        FoV.validate_config(fov_config)
        self.tree = tree
        self.target = utils.to_point(target)
        self.fov_config = fov_config
        self.weights = weights
        self.gain_of_interest_threshold = gain_of_interest_threshold
        self.evaluator = evaluator if evaluator is not None else NBVGainEvaluator()
        self.logger = tree.logger

        self.best_gain: float | None = None
        self.best_node: TreeNode | None = None
        self.sufficient_node: TreeNode | None = None
        self.scores: t.Dict[int, float] = {}

        self.tree.add_node_created_listener(self._on_node_created)

    @classmethod
    def from_request(
        cls,
        request: NBVRequestModel,
        occupancy_map: OccupancyMap | None,
        logger: utils.PlannerLogger | None = None,
        distance_transform: t.Callable[[float], float] = identity,
    ) -> "NBVSearch":
        tree = RRTTree.build(RRTConfig.from_request(request), logger=logger)
        search = cls(
            tree=tree,
            target=request.target,
            fov_config=request.fov,
            weights=GainWeights.from_model(request.gain_weights, distance_transform),
            gain_of_interest_threshold=request.gain_of_interest_threshold,
        )
        tree.assign_environment(occupancy_map)
        return search

    def fov_at(self, position: t.Sequence[float]) -> FoV:
        return FoV.looking_at(position, self.target, self.fov_config)

    def _on_node_created(self, parent: TreeNode, node: TreeNode):
        fov = self.fov_at(node.position)
        gain = self.evaluator.score(fov, self.tree.occupancy_map, self.weights)
        self.scores[node.index] = gain

        if self.best_gain is None or gain > self.best_gain:
            self.logger.append(
                utils.PlannerLog(
                    "Gain {:.3f} of {} is the best so far".format(gain, fov),
                    self.tree.iterations,
                )
            )
            self.best_gain = gain
            self.best_node = node

        if self.sufficient_node is None and gain > self.gain_of_interest_threshold:
            self.logger.append(
                utils.PlannerLog(
                    "Found a suitable gain {:.3f} at node {}".format(gain, node.index),
                    self.tree.iterations,
                )
            )
            self.sufficient_node = node

    def run(self) -> NBVResult:
        if self.tree.occupancy_map is None:
            raise EnvironmentUnavailable("No occupancy map assigned to the NBV search")

        while self.tree.iterations < self.tree.config.max_iterations:
            self.tree.grow1()
            if self.sufficient_node is not None:
                return NBVResult(
                    found_sufficient_gain=True,
                    waypoints=self.tree.waypoints_from_node(self.sufficient_node.index),
                    best_gain=self.best_gain,
                    best_node=self.best_node,
                    iterations=self.tree.iterations,
                )

        exhausted = SearchExhausted(self.tree.iterations)
        fallback = self.best_node if self.best_node is not None else self.tree.root
        self.logger.append(
            utils.PlannerLog(
                "No suitable nbv found, using best node {} instead".format(
                    fallback.index
                ),
                self.tree.iterations,
            )
        )
        return NBVResult(
            found_sufficient_gain=False,
            waypoints=self.tree.waypoints_from_node(fallback.index),
            best_gain=self.best_gain,
            best_node=self.best_node,
            iterations=self.tree.iterations,
            exhausted=exhausted,
        )
