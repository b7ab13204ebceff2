from __future__ import annotations

import math

from campus_attendance.models import GeoPoint, Geofence

EARTH_RADIUS_METERS = 6_371_000.0


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points using the haversine formula."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_within_geofence(reporter: GeoPoint, fence: Geofence) -> bool:
    # The boundary itself counts as inside.
    return distance_meters(reporter, fence.center) <= fence.radius_meters
