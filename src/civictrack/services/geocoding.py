"""Reverse geocoding collaborator.

Resolution is best-effort: a failing or empty provider never blocks issue
creation, the address falls back to a coordinate-derived placeholder.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from civictrack.utils.geo import placeholder_address

logger = logging.getLogger(__name__)


class ReverseGeocoder(ABC):
    """Address lookup from coordinates.

    Implementations return None when they have nothing to offer.
    """

    @abstractmethod
    def resolve(self, latitude: float, longitude: float) -> str | None:
        raise NotImplementedError


class PlaceholderGeocoder(ReverseGeocoder):
    """Geocoder used when no provider is configured."""

    def resolve(self, latitude: float, longitude: float) -> str | None:
        return None


def resolve_address(geocoder: ReverseGeocoder | None, latitude: float, longitude: float) -> str:
    """Return an address for the point, never raising."""
    if geocoder is not None:
        try:
            address = geocoder.resolve(latitude, longitude)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Reverse geocoding failed for (%f, %f)", latitude, longitude, exc_info=True
            )
        else:
            if address and address.strip():
                return address.strip()[:200]
    return placeholder_address(latitude, longitude)


def get_geocoder() -> ReverseGeocoder:
    """Return the configured reverse geocoder."""
    return PlaceholderGeocoder()
