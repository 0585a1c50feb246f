import functools
import math
import typing as t

import numpy as np
import numpy.typing as npt

from voxplan.data_models import Point3D
from voxplan.exceptions import ConfigurationError, OutOfRange
from voxplan.utils import utils


@functools.lru_cache(maxsize=32)
def binomial_lut(n: int) -> t.Tuple[int, ...]:
    """Binomial coefficients C(n, i) for i in [0, n]; one entry per control point."""
    return tuple(math.comb(n, i) for i in range(n + 1))


class BezierSpline:
    """
    A Bezier curve through a fixed set of control points, sampled at `resolution + 1`
    evenly spaced parameter values, with a cumulative arc-length table over the samples.

    Instances are immutable once constructed; build a new spline to change the input.
    `get_point_at_time` is a lookup into the samples, while `get_point_at_distance`
    inverts the arc-length table and evaluates the curve exactly, which lets a consumer
    move along the curve at constant speed.
    """

    def __init__(
        self,
        points: t.Sequence[t.Sequence[float]] | None = None,
        resolution: int = 100,
    ):
        if not isinstance(resolution, (int, np.integer)) or resolution <= 0:
            raise ConfigurationError(
                "resolution must be a positive integer, got {}".format(resolution)
            )
        self._constructed = False
        self.resolution = resolution
        self._control_points = np.zeros((0, 3))
        self._binomials = np.zeros(0)
        self._spline_points = np.zeros((0, 3))
        self._distance_lut = np.zeros(0)

        if points is None:
            return

        if len(points) < 1:
            raise ConfigurationError("A spline needs at least one control point")

        control_points = np.array([list(p) for p in points], dtype=np.float64)
        if control_points.ndim != 2 or control_points.shape[1] != 3:
            raise ConfigurationError("Control points must be 3D")
        self._control_points = control_points
        self._binomials = np.array(
            binomial_lut(len(control_points) - 1), dtype=np.float64
        )
        assert len(self._binomials) == len(self._control_points)

        times = np.arange(resolution + 1) / resolution
        self._spline_points = self._evaluate_many(times)
        self._distance_lut = self._generate_distance_lut(self._spline_points)

        for arr in (
            self._control_points,
            self._binomials,
            self._spline_points,
            self._distance_lut,
        ):
            arr.flags.writeable = False
        self._constructed = True

    @classmethod
    def construct(
        cls, points: t.Sequence[t.Sequence[float]], resolution: int
    ) -> "BezierSpline":
        return cls(points, resolution)

    @staticmethod
    def _generate_distance_lut(
        spline_points: npt.NDArray[np.float64],
    ) -> npt.NDArray[np.float64]:
        # Arc length approximated by the polyline through the samples
        segment_lengths = np.linalg.norm(np.diff(spline_points, axis=0), axis=1)
        return np.concatenate([[0.0], np.cumsum(segment_lengths)])

    def _evaluate_many(self, times: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        n = len(self._control_points) - 1
        i = np.arange(n + 1)
        ts = np.asarray(times, dtype=np.float64)[:, None]
        basis = self._binomials * np.power(ts, i) * np.power(1.0 - ts, n - i)
        return basis @ self._control_points

    def _check_constructed(self):
        if not self._constructed:
            raise OutOfRange("The spline has not been constructed")

    def evaluate(self, time: float) -> Point3D:
        """Exact Bernstein evaluation of the curve at parameter `time` in [0, 1]."""
        self._check_constructed()
        if not 0.0 <= time <= 1.0:
            raise OutOfRange("time must lie in [0, 1], got {}".format(time), time)
        return utils.to_point(self._evaluate_many(np.array([time]))[0])

    def get_point_at_time(self, time: float) -> Point3D:
        """Returns the precomputed sample closest below `time`, where 0 <= time <= 1."""
        self._check_constructed()
        if not 0.0 <= time <= 1.0:
            raise OutOfRange("time must lie in [0, 1], got {}".format(time), time)
        idx = int(math.floor(self.resolution * time))
        return utils.to_point(self._spline_points[idx])

    def get_point_at_distance(self, distance: float) -> Point3D:
        """
        Returns the point `distance` meters along the curve. Negative distances clamp to
        the first sample and distances past the end clamp to the last one.
        """
        self._check_constructed()
        if math.isnan(distance):
            raise OutOfRange("distance is NaN", distance)
        if distance <= 0.0:
            return utils.to_point(self._spline_points[0])
        if distance >= self._distance_lut[-1]:
            return utils.to_point(self._spline_points[-1])

        # distance_lut[idx] <= distance < distance_lut[idx + 1]
        idx = int(np.searchsorted(self._distance_lut, distance, side="right")) - 1
        span = self._distance_lut[idx + 1] - self._distance_lut[idx]
        fraction = (distance - self._distance_lut[idx]) / span
        time = (idx + fraction) / self.resolution
        return utils.to_point(self._evaluate_many(np.array([time]))[0])

    def sample_by_distance(self, spacing: float) -> t.List[Point3D]:
        """Points spaced `spacing` meters apart along the curve, both ends included."""
        self._check_constructed()
        if not spacing > 0:
            raise ConfigurationError(
                "spacing must be positive, got {}".format(spacing)
            )
        total = self.total_arc_length()
        distances = list(np.arange(0.0, total, spacing)) + [total]
        return [self.get_point_at_distance(float(d)) for d in distances]

    # Aliases matching the consumer contract
    def point_at_time(self, time: float) -> Point3D:
        return self.get_point_at_time(time)

    def point_at_distance(self, distance: float) -> Point3D:
        return self.get_point_at_distance(distance)

    def total_arc_length(self) -> float:
        self._check_constructed()
        return float(self._distance_lut[-1])

    def raw_samples(self) -> t.List[Point3D]:
        self._check_constructed()
        return [utils.to_point(p) for p in self._spline_points]

    @property
    def is_constructed(self) -> bool:
        return self._constructed

    @property
    def control_points(self) -> t.List[Point3D]:
        return [utils.to_point(p) for p in self._control_points]

    @property
    def binomials(self) -> t.Tuple[int, ...]:
        return tuple(int(b) for b in self._binomials)

    @property
    def distance_lut(self) -> npt.NDArray[np.float64]:
        return self._distance_lut
