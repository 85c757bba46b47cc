"""Location capture at the moment of submission."""

from __future__ import annotations

import logging
from typing import Protocol

from pricesurvey.core.config import settings
from pricesurvey.core.errors import GeoFailureReason, GeolocationError
from pricesurvey.models import GeoFix

logger = logging.getLogger(__name__)

MESSAGES = {
    GeoFailureReason.PERMISSION_DENIED: "Location access denied by user",
    GeoFailureReason.POSITION_UNAVAILABLE: "Location information unavailable",
    GeoFailureReason.TIMEOUT: "Location request timed out",
    GeoFailureReason.UNSUPPORTED: "Geolocation is not supported",
}


class GeoProvider(Protocol):
    async def locate(self) -> GeoFix: ...


class FixedLocationProvider:
    """Reports a configured position, e.g. a kiosk device at a known outlet."""

    def __init__(self, lat: float, lng: float, accuracy: float | None = None) -> None:
        self.fix = GeoFix(lat=lat, lng=lng, accuracy=accuracy)

    async def locate(self) -> GeoFix:
        return self.fix


class UnsupportedProvider:
    async def locate(self) -> GeoFix:
        raise GeolocationError(
            GeoFailureReason.UNSUPPORTED, MESSAGES[GeoFailureReason.UNSUPPORTED]
        )


def provider_from_settings() -> GeoProvider:
    if settings.geo_latitude is None or settings.geo_longitude is None:
        return UnsupportedProvider()
    return FixedLocationProvider(settings.geo_latitude, settings.geo_longitude, settings.geo_accuracy_m)


async def capture_location(provider: GeoProvider) -> GeoFix | None:
    """Try once for a fix. A failed fix never blocks the submission."""
    try:
        return await provider.locate()
    except GeolocationError as exc:
        logger.warning(
            "Location unavailable (%s): %s",
            exc.reason.value,
            MESSAGES.get(exc.reason, str(exc)),
        )
        return None


__all__ = [
    "FixedLocationProvider",
    "GeoProvider",
    "UnsupportedProvider",
    "capture_location",
    "provider_from_settings",
]
