import math

import numpy as np
import pytest

from voxplan.algorithms.bezier_spline import BezierSpline, binomial_lut
from voxplan.exceptions import ConfigurationError, OutOfRange


def test_binomial_lut():
    assert binomial_lut(0) == (1,)
    assert binomial_lut(2) == (1, 2, 1)
    assert binomial_lut(4) == (1, 4, 6, 4, 1)


class TestBezierSpline:
    def setup_method(self):
        self.spline = BezierSpline([(0, 0, 0), (1, 2, 0), (2, 0, 0)], resolution=10)

    def test_point_at_time(self):
        assert np.allclose(self.spline.point_at_time(0.5), (1.0, 1.0, 0.0))
        assert np.allclose(self.spline.evaluate(0.5), (1.0, 1.0, 0.0))

    def test_endpoints(self):
        assert np.allclose(self.spline.point_at_time(0.0), (0.0, 0.0, 0.0))
        assert np.allclose(self.spline.point_at_time(1.0), (2.0, 0.0, 0.0))
        assert np.allclose(self.spline.point_at_distance(0.0), (0.0, 0.0, 0.0))
        assert np.allclose(
            self.spline.point_at_distance(self.spline.total_arc_length()), (2.0, 0.0, 0.0)
        )

    def test_samples(self):
        samples = self.spline.raw_samples()
        assert len(samples) == 11
        assert self.spline.binomials == (1, 2, 1)
        assert self.spline.is_constructed

    def test_distance_lut(self):
        lut = self.spline.distance_lut
        assert len(lut) == 11
        assert lut[0] == 0.0
        assert np.all(np.diff(lut) >= 0)
        # the polyline through the samples never exceeds the control polygon
        assert lut[-1] <= 2 * math.sqrt(5) + 1e-9
        assert lut[-1] > 2.0

    def test_clamped_distances(self):
        assert np.allclose(self.spline.point_at_distance(-1.0), (0.0, 0.0, 0.0))
        assert np.allclose(self.spline.point_at_distance(1e9), (2.0, 0.0, 0.0))

    def test_out_of_range(self):
        with pytest.raises(OutOfRange):
            self.spline.point_at_time(-0.1)
        with pytest.raises(OutOfRange):
            self.spline.point_at_time(1.1)
        with pytest.raises(OutOfRange):
            self.spline.point_at_distance(float("nan"))
        with pytest.raises(OutOfRange):
            self.spline.evaluate(2.0)

    def test_immutable(self):
        with pytest.raises(ValueError):
            self.spline.distance_lut[0] = 1.0


def test_straight_line():
    spline = BezierSpline([(0, 0, 0), (10, 0, 0)], resolution=10)
    assert spline.total_arc_length() == pytest.approx(10.0)
    assert np.allclose(spline.point_at_distance(2.5), (2.5, 0.0, 0.0))
    assert np.allclose(spline.point_at_time(0.25), (2.0, 0.0, 0.0))


def test_constant_speed_on_uneven_parametrization():
    spline = BezierSpline([(0, 0, 0), (1, 0, 0), (10, 0, 0)], resolution=100)
    for d in [0.5, 1.0, 3.3, 5.0, 7.7, 9.5]:
        point = spline.point_at_distance(d)
        assert point.x == pytest.approx(d, abs=1e-3)
        assert point.y == 0.0


def test_single_control_point():
    spline = BezierSpline([(1, 2, 3)], resolution=5)
    assert spline.total_arc_length() == 0.0
    assert spline.point_at_time(0.7) == (1.0, 2.0, 3.0)
    assert spline.point_at_distance(4.0) == (1.0, 2.0, 3.0)
    assert spline.sample_by_distance(1.0) == [(1.0, 2.0, 3.0)]


def test_sample_by_distance():
    spline = BezierSpline([(0, 0, 0), (10, 0, 0)], resolution=10)
    points = spline.sample_by_distance(2.5)
    assert len(points) == 5
    assert np.allclose([p.x for p in points], [0.0, 2.5, 5.0, 7.5, 10.0])

    with pytest.raises(ConfigurationError):
        spline.sample_by_distance(0.0)


def test_invalid_resolution_without_points():
    with pytest.raises(ConfigurationError):
        BezierSpline(resolution=-5)
    with pytest.raises(ConfigurationError):
        BezierSpline(resolution=0)


def test_unconstructed():
    spline = BezierSpline()
    assert not spline.is_constructed
    with pytest.raises(OutOfRange):
        spline.point_at_time(0.5)
    with pytest.raises(OutOfRange):
        spline.point_at_distance(1.0)
    with pytest.raises(OutOfRange):
        spline.total_arc_length()


@pytest.mark.parametrize(
    "points, resolution",
    [
        ([], 10),
        ([(0, 0, 0), (1, 1, 1)], 0),
        ([(0, 0, 0), (1, 1, 1)], -3),
        ([(0, 0, 0), (1, 1, 1)], 2.5),
        ([(0, 0), (1, 1)], 10),
    ],
)
def test_invalid_construction(points, resolution):
    with pytest.raises(ConfigurationError):
        BezierSpline.construct(points, resolution)
