import typing as t
from dataclasses import dataclass

from voxplan.data_models import GainWeightsModel
from voxplan.exceptions import EnvironmentUnavailable
from voxplan.utils import utils
from voxplan.world.fov import FoV
from voxplan.world.occupancy_map import OccupancyMap


def identity(x: float) -> float:
    return x


@dataclass(frozen=True)
class GainWeights:
    free: float = 0.0
    occupied: float = 1.0
    unknown: float = 1.0
    distance: float = 0.0
    distance_transform: t.Callable[[float], float] = identity
    """Monotonic transform applied to the viewpoint-to-target distance."""

    @classmethod
    def from_model(
        cls,
        model: GainWeightsModel,
        distance_transform: t.Callable[[float], float] = identity,
    ) -> "GainWeights":
        return cls(
            free=model.free,
            occupied=model.occupied,
            unknown=model.unknown,
            distance=model.distance,
            distance_transform=distance_transform,
        )


class NBVGainEvaluator:
    """
    Scores a candidate viewpoint as a weighted sum of the voxel counts inside its frustum
    plus a weighted, transformed distance to the look-at target. Given the same map
    snapshot and FoV the score is always the same.
    """

    def score(
        self,
        fov: FoV,
        occupancy_map: OccupancyMap | None,
        weights: GainWeights,
    ) -> float:
        if occupancy_map is None:
            raise EnvironmentUnavailable("Cannot score a viewpoint without a map")

        counts = occupancy_map.frustum_classify(fov)
        distance = utils.euclidean_distance(fov.position, fov.target)
        return (
            weights.free * counts.free
            + weights.occupied * counts.occupied
            + weights.unknown * counts.unknown
            + weights.distance * weights.distance_transform(distance)
        )
