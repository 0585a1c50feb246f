import typing as t

import numpy as np

from voxplan.data_models import Bounds3D, Point3D
from voxplan.exceptions import ConfigurationError
from voxplan.utils import utils


def bounds_around(
    points: t.Iterable[t.Sequence[float]], margin: float
) -> Bounds3D:
    """Axis-aligned box enclosing `points`, padded by `margin` on every side."""
    arr = np.array([list(p) for p in points], dtype=np.float64)
    return (
        utils.to_point(arr.min(axis=0) - margin),
        utils.to_point(arr.max(axis=0) + margin),
    )


class SamplingStrategy:
    """Draws goal-biased targets for tree growth inside a bounded planning volume."""

    def __init__(
        self,
        *,
        goal: t.Sequence[float],
        goal_bias: float,
        bounds: Bounds3D,
        rng: np.random.Generator,
    ):
        if not 0.0 <= goal_bias <= 1.0:
            raise ConfigurationError(
                "goal_bias must lie in [0, 1], got {}".format(goal_bias)
            )
        low = np.asarray(bounds[0], dtype=np.float64)
        high = np.asarray(bounds[1], dtype=np.float64)
        if np.any(high < low):
            raise ConfigurationError("Invalid sampling bounds {}".format(bounds))
        self.goal = utils.to_point(goal)
        self.goal_bias = goal_bias
        self.bounds = (utils.to_point(low), utils.to_point(high))
        self.rng = rng
        self._low = low
        self._high = high

    def sample(self) -> Point3D:
        if self.rng.random() < self.goal_bias:
            return self.goal
        return utils.to_point(self.rng.uniform(self._low, self._high))
