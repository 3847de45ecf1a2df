"""Great-circle distance on a spherical Earth (haversine)."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 position in decimal degrees."""

    lat: float
    lng: float


def haversine_meters(a: Coordinate | None, b: Coordinate | None) -> float:
    """Distance between two coordinates in meters.

    A missing coordinate on either side yields 0.
    """
    if a is None or b is None:
        return 0.0

    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)

    x = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    # Rounding can push x a hair above 1 for antipodal points.
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, x)))


def is_within_radius(a: Coordinate | None, b: Coordinate | None, radius: float) -> bool:
    """True when both positions are known and no further apart than ``radius`` meters."""
    if a is None or b is None:
        return False
    return haversine_meters(a, b) <= radius


def format_distance(meters: float) -> str:
    """Human-readable distance: '850 m' below a kilometer, '1.2 km' above."""
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{round(meters)} m"
