"""Spherical geometry helpers used by proximity search."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class BoundingBox:
    """Latitude/longitude window enclosing a search circle.

    ``min_lng > max_lng`` means the window wraps across the antimeridian.
    ``None`` longitudes mean every longitude qualifies (the circle covers a pole).
    """

    min_lat: float
    max_lat: float
    min_lng: float | None
    max_lng: float | None

    @property
    def wraps_antimeridian(self) -> bool:
        return self.min_lng is not None and self.max_lng is not None and self.min_lng > self.max_lng


def is_valid_latitude(value: object) -> bool:
    return _is_number(value) and -90.0 <= float(value) <= 90.0  # type: ignore[arg-type]


def is_valid_longitude(value: object) -> bool:
    return _is_number(value) and -180.0 <= float(value) <= 180.0  # type: ignore[arg-type]


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the great-circle distance between two points in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(lat: float, lng: float, radius_m: float) -> BoundingBox:
    """Return a window that contains every point within ``radius_m`` of the center."""
    lat_delta = math.degrees(radius_m / EARTH_RADIUS_M)
    min_lat = lat - lat_delta
    max_lat = lat + lat_delta
    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(max(min_lat, -90.0), min(max_lat, 90.0), None, None)

    # Widest longitude span of the circle, reached at latitude asin(sin(lat)/cos(d)).
    angular = radius_m / EARTH_RADIUS_M
    lng_delta = math.degrees(math.asin(min(1.0, math.sin(angular) / math.cos(math.radians(lat)))))
    min_lng = lng - lng_delta
    max_lng = lng + lng_delta
    if min_lng < -180.0:
        min_lng += 360.0
    if max_lng > 180.0:
        max_lng -= 360.0
    return BoundingBox(min_lat, max_lat, min_lng, max_lng)


def placeholder_address(lat: float, lng: float) -> str:
    """Deterministic address used when reverse geocoding yields nothing."""
    return f"Location: {lat:.6f}, {lng:.6f}"
