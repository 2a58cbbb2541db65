import math

import pytest

from quest_route_ai import geo
from quest_route_ai.geo import Point


def test_haversine_zero_for_same_point():
    a = Point(43.6, -116.2, "a")
    assert geo.haversine_km(a, a) == 0.0
    assert geo.haversine_km(a, Point(43.6, -116.2, "other label")) == 0.0


def test_haversine_symmetric():
    a = Point(12.0, -30.0)
    b = Point(-5.0, 20.0)
    assert geo.haversine_km(a, b) == geo.haversine_km(b, a)
    assert geo.haversine_km(a, b) > 0


def test_haversine_one_degree_on_equator():
    d = geo.haversine_km(Point(0.0, 0.0), Point(0.0, 1.0))
    assert d == pytest.approx(111.19, abs=0.1)
    assert d == pytest.approx(geo.EARTH_RADIUS_KM * math.pi / 180)


def test_haversine_antipodes():
    d = geo.haversine_km(Point(0.0, 0.0), Point(0.0, 180.0))
    assert d == pytest.approx(math.pi * geo.EARTH_RADIUS_KM)


def test_haversine_across_antimeridian():
    # The longitude delta is not wrapped, but sin^2 is periodic so the
    # short way round is still measured.
    d = geo.haversine_km(Point(0.0, 179.0), Point(0.0, -179.0))
    assert d == pytest.approx(2 * 111.19, abs=0.2)


def test_tour_length_is_open():
    pts = [Point(0.0, 0.0), Point(0.0, 1.0), Point(0.0, 2.0)]
    leg = geo.haversine_km(pts[0], pts[1])
    assert geo.tour_length(pts, [0, 1, 2]) == pytest.approx(2 * leg)
    assert geo.tour_length(pts, [0]) == 0.0
    assert geo.tour_length(pts, []) == 0.0


def test_bounding_box():
    pts = [Point(10.0, 20.0), Point(-5.0, 30.0)]
    assert geo.bounding_box(pts, buffer_km=0.0) == pytest.approx([-5.0, 20.0, 10.0, 30.0])
    buffered = geo.bounding_box(pts, buffer_km=111.32)
    assert buffered[0] == pytest.approx(-6.0)
    assert buffered[2] == pytest.approx(11.0)
    assert buffered[1] < 20.0 and buffered[3] > 30.0
    assert geo.bounding_box([]) is None


def test_bounding_box_clamped():
    box = geo.bounding_box([Point(89.9, 179.9)], buffer_km=500.0)
    assert box[2] == 90.0
    assert box[3] == 180.0
