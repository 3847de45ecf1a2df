"""Device-side geo logic: distance, geofence visibility, discovery."""

from teamtrack.geo.discovery import DiscoveryTracker, check_discovery
from teamtrack.geo.distance import Coordinate, format_distance, haversine_meters, is_within_radius
from teamtrack.geo.geofence import (
    DEFAULT_REVEAL_RADIUS_M,
    GameMode,
    GamePoint,
    filter_visible_points,
    is_task_visible,
)

__all__ = [
    "DEFAULT_REVEAL_RADIUS_M",
    "Coordinate",
    "DiscoveryTracker",
    "GameMode",
    "GamePoint",
    "check_discovery",
    "filter_visible_points",
    "format_distance",
    "haversine_meters",
    "is_task_visible",
    "is_within_radius",
]
