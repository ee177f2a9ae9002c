import pytest

from evo_racer.engine.geometry import Polyline, Segment, segment_intersection


def test_segment_intersection_returns_fraction_along_first_segment():
    t = segment_intersection((0.0, 0.0), (10.0, 0.0), (4.0, -1.0), (4.0, 1.0))
    assert t == pytest.approx(0.4)


def test_parallel_or_disjoint_segments_miss():
    assert segment_intersection((0.0, 0.0), (10.0, 0.0), (0.0, 1.0), (10.0, 1.0)) is None
    assert segment_intersection((0.0, 0.0), (1.0, 0.0), (4.0, -1.0), (4.0, 1.0)) is None


def test_polyline_arc_length_queries():
    line = Polyline.from_points([(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)])
    assert line.length == 20.0
    assert line.position_at(15.0) == pytest.approx((10.0, 5.0))
    assert line.tangent_at(15.0) == pytest.approx((0.0, 1.0))
    assert line.normal_at(5.0) == pytest.approx((0.0, 1.0))
    assert line.position_at(-3.0) == (0.0, 0.0)
    assert line.segments()[1] == Segment((10.0, 0.0), (10.0, 10.0))


def test_polyline_needs_two_points():
    with pytest.raises(ValueError):
        Polyline.from_points([(0.0, 0.0)])


def test_segment_midpoint():
    assert Segment((0.0, 0.0), (4.0, 2.0)).midpoint == (2.0, 1.0)
