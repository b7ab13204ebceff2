from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from campus_attendance.models import GeoPoint

logger = logging.getLogger(__name__)

DEFAULT_GEOLOCATION_URL = "https://ipapi.co/json/"


class GeolocationError(RuntimeError):
    """Raised when the current position is denied or cannot be determined."""


class LocationProvider(Protocol):
    def current_position(self) -> GeoPoint:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class FixedLocationProvider:
    """Report a position configured by the user, e.g. for a lecture-hall kiosk."""

    latitude: float | None
    longitude: float | None

    def current_position(self) -> GeoPoint:
        if self.latitude is None or self.longitude is None:
            raise GeolocationError("No fixed location has been configured. Set it on the Settings page.")
        return GeoPoint(float(self.latitude), float(self.longitude))


class IPGeolocationProvider:
    """Resolve the machine's approximate position from an IP geolocation service."""

    def __init__(
        self,
        url: str = DEFAULT_GEOLOCATION_URL,
        *,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    def current_position(self) -> GeoPoint:
        try:
            response = self._session.get(self._url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            logger.warning("Geolocation lookup against %s failed: %s", self._url, exc)
            raise GeolocationError(f"Unable to retrieve your location: {exc}") from exc
        except ValueError as exc:
            raise GeolocationError("Location service returned an unreadable response.") from exc

        return self._parse(payload)

    @staticmethod
    def _parse(payload: Any) -> GeoPoint:
        if not isinstance(payload, dict):
            raise GeolocationError("Location service returned an unexpected payload.")
        if payload.get("error"):
            raise GeolocationError(str(payload.get("reason") or payload.get("message") or "Location lookup denied."))

        latitude = payload.get("latitude", payload.get("lat"))
        longitude = payload.get("longitude", payload.get("lon"))
        try:
            return GeoPoint(float(latitude), float(longitude))
        except (TypeError, ValueError) as exc:
            raise GeolocationError("Location service did not return coordinates.") from exc


def build_location_provider(
    mode: str,
    *,
    url: str = DEFAULT_GEOLOCATION_URL,
    timeout: float = 5.0,
    fixed_latitude: float | None = None,
    fixed_longitude: float | None = None,
) -> LocationProvider:
    if mode == "fixed":
        return FixedLocationProvider(fixed_latitude, fixed_longitude)
    if mode == "ip":
        return IPGeolocationProvider(url, timeout=timeout)
    raise ValueError(f"Unknown geolocation mode: {mode!r}")
