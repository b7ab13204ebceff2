import math

from campus_attendance.models import GeoPoint, Geofence
from campus_attendance.services import distance_meters, is_within_geofence
from campus_attendance.services.geofence import EARTH_RADIUS_METERS

MAIN_CAMPUS = GeoPoint(40.7128, -74.0060)
NORTH_CAMPUS = GeoPoint(40.7589, -73.9851)


def north_of(point: GeoPoint, meters: float) -> GeoPoint:
    return GeoPoint(point.latitude + math.degrees(meters / EARTH_RADIUS_METERS), point.longitude)


def test_distance_to_self_is_zero():
    assert distance_meters(MAIN_CAMPUS, MAIN_CAMPUS) == 0.0


def test_distance_is_symmetric():
    assert math.isclose(
        distance_meters(MAIN_CAMPUS, NORTH_CAMPUS),
        distance_meters(NORTH_CAMPUS, MAIN_CAMPUS),
    )


def test_distance_between_demo_campuses():
    # Roughly 5.4 km across Manhattan.
    assert 5_000 < distance_meters(MAIN_CAMPUS, NORTH_CAMPUS) < 6_000


def test_distance_along_meridian():
    assert math.isclose(distance_meters(MAIN_CAMPUS, north_of(MAIN_CAMPUS, 150)), 150, rel_tol=1e-6)


def test_antipodal_points_do_not_blow_up():
    distance = distance_meters(GeoPoint(0.0, 0.0), GeoPoint(0.0, 180.0))
    assert math.isclose(distance, math.pi * EARTH_RADIUS_METERS, rel_tol=1e-9)


def test_boundary_is_inside():
    fence = Geofence(center=MAIN_CAMPUS, radius_meters=100)
    assert is_within_geofence(north_of(MAIN_CAMPUS, 99.9), fence)
    assert not is_within_geofence(north_of(MAIN_CAMPUS, 150), fence)
    assert is_within_geofence(MAIN_CAMPUS, Geofence(center=MAIN_CAMPUS, radius_meters=0))


def test_radius_equal_to_distance_is_inside_and_just_short_is_outside():
    reporter = GeoPoint(40.7135, -74.0049)
    distance = distance_meters(reporter, MAIN_CAMPUS)

    assert is_within_geofence(reporter, Geofence(center=MAIN_CAMPUS, radius_meters=distance))
    assert not is_within_geofence(reporter, Geofence(center=MAIN_CAMPUS, radius_meters=distance - 1e-6))
