from __future__ import annotations

import pytest
import requests

from campus_attendance.models import GeoPoint
from campus_attendance.services import (
    FixedLocationProvider,
    GeolocationError,
    IPGeolocationProvider,
    build_location_provider,
)


class FakeResponse:
    def __init__(self, payload=None, *, status_code=200, invalid_json=False):
        self._payload = payload
        self.status_code = status_code
        self._invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._invalid_json:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, timeout=None):
        self.requests.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def test_ip_provider_reads_coordinates():
    session = FakeSession(FakeResponse({"latitude": 40.71, "longitude": -74.0}))
    provider = IPGeolocationProvider("https://geo.example/json", timeout=2.5, session=session)

    assert provider.current_position() == GeoPoint(40.71, -74.0)
    assert session.requests == [("https://geo.example/json", 2.5)]


def test_ip_provider_accepts_short_keys():
    session = FakeSession(FakeResponse({"lat": "60.17", "lon": "24.94"}))

    assert IPGeolocationProvider(session=session).current_position() == GeoPoint(60.17, 24.94)


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("no route to host")),
        FakeSession(FakeResponse(status_code=429)),
        FakeSession(FakeResponse(invalid_json=True)),
        FakeSession(FakeResponse({"error": True, "reason": "RateLimited"})),
        FakeSession(FakeResponse({"city": "Nowhere"})),
        FakeSession(FakeResponse(["not", "a", "dict"])),
    ],
)
def test_ip_provider_failures_raise_geolocation_error(session):
    with pytest.raises(GeolocationError):
        IPGeolocationProvider(session=session).current_position()


def test_fixed_provider():
    assert FixedLocationProvider(1.5, 2.5).current_position() == GeoPoint(1.5, 2.5)
    with pytest.raises(GeolocationError):
        FixedLocationProvider(1.5, None).current_position()


def test_build_location_provider():
    assert isinstance(build_location_provider("fixed", fixed_latitude=1, fixed_longitude=2), FixedLocationProvider)
    assert isinstance(build_location_provider("ip"), IPGeolocationProvider)
    with pytest.raises(ValueError):
        build_location_provider("gps")
