import pytest

from racenav.core.angles import rad_to_deg
from racenav.core.geo import EARTH_RADIUS_M, GeoPoint, HaversineModel
from racenav.core.segment import distance_to_segment
from racenav.core.vincenty import VincentyModel

# A ~200 m east-west start line.
BOAT_END = GeoPoint(lon=-1.3000, lat=50.7700)
PIN_END = GeoPoint(lon=-1.2972, lat=50.7700)
MID = GeoPoint(lon=(BOAT_END.lon + PIN_END.lon) / 2, lat=50.7700)


def _north_of(p: GeoPoint, meters: float) -> GeoPoint:
    return GeoPoint(lon=p.lon, lat=p.lat + rad_to_deg(meters / EARTH_RADIUS_M))


def test_perpendicular_distance_to_the_line():
    p = _north_of(MID, 50)
    solution = distance_to_segment(p, BOAT_END, PIN_END, HaversineModel())
    assert solution.distance == pytest.approx(50, rel=1e-6)


def test_point_beyond_an_end_is_measured_to_that_end():
    model = HaversineModel()
    p = GeoPoint(lon=-1.2950, lat=50.7705)
    assert distance_to_segment(p, BOAT_END, PIN_END, model).distance == pytest.approx(model.distance(p, PIN_END).distance)

    q = GeoPoint(lon=-1.3030, lat=50.7695)
    assert distance_to_segment(q, BOAT_END, PIN_END, model).distance == pytest.approx(model.distance(q, BOAT_END).distance)


@pytest.mark.parametrize("model", [HaversineModel(), VincentyModel()], ids=["haversine", "wsg84"])
def test_degenerate_segment_falls_back_to_point_distance(model):
    p = _north_of(MID, 80)
    assert distance_to_segment(p, BOAT_END, BOAT_END, model) == model.distance(p, BOAT_END)


@pytest.mark.parametrize("model", [HaversineModel(), VincentyModel()], ids=["haversine", "wsg84"])
def test_point_on_the_line_is_at_zero_distance(model):
    assert distance_to_segment(MID, BOAT_END, PIN_END, model).distance == pytest.approx(0, abs=1e-3)


def test_uses_the_model_it_is_given():
    p = _north_of(MID, 120)
    spherical = distance_to_segment(p, BOAT_END, PIN_END, HaversineModel()).distance
    ellipsoidal = distance_to_segment(p, BOAT_END, PIN_END, VincentyModel()).distance
    assert spherical != ellipsoidal
    assert ellipsoidal == pytest.approx(spherical, rel=0.01)
