"""Edge-triggered discovery: a task is discovered the moment a fix crosses into its radius."""

from __future__ import annotations

from collections.abc import Iterable

from teamtrack.geo.distance import Coordinate, haversine_meters
from teamtrack.geo.geofence import (
    DEFAULT_REVEAL_RADIUS_M,
    GamePoint,
    TeamProgress,
    has_discovered,
    reveal_radius,
)


def check_discovery(
    point: GamePoint,
    current: Coordinate | None,
    previous: Coordinate | None,
    team: TeamProgress | None = None,
    default_radius: float = DEFAULT_REVEAL_RADIUS_M,
) -> bool:
    """True only on the fix that brings the device inside the radius.

    A first fix that is already inside counts as a discovery. Staying inside
    across later fixes does not fire again, and nothing fires for a point
    the team already discovered.
    """
    if not point.proximity_trigger_enabled or point.location is None or current is None:
        return False

    if has_discovered(point, team):
        return False

    radius = reveal_radius(point, default_radius)
    if haversine_meters(current, point.location) > radius:
        return False

    if previous is None:
        return True

    return haversine_meters(previous, point.location) > radius


class DiscoveryTracker:
    """Per-device discovery state across a stream of GPS fixes.

    Remembers the previous fix and every point this device already reported,
    so each point fires at most once per device even before the team record
    catches up on the next sync.
    """

    def __init__(self, default_radius: float = DEFAULT_REVEAL_RADIUS_M) -> None:
        self.default_radius = default_radius
        self.previous: Coordinate | None = None
        self._reported: set[str] = set()

    @property
    def reported(self) -> frozenset[str]:
        return frozenset(self._reported)

    def observe(
        self,
        points: Iterable[GamePoint],
        fix: Coordinate | None,
        team: TeamProgress | None = None,
    ) -> list[GamePoint]:
        """Feed one fix; return the points discovered by it."""
        if fix is None:
            # No fix: skip discovery, keep the last known position as baseline.
            return []

        discovered = []
        for point in points:
            if point.id in self._reported:
                continue
            if check_discovery(point, fix, self.previous, team, self.default_radius):
                self._reported.add(point.id)
                discovered.append(point)

        self.previous = fix
        return discovered

    def reset(self) -> None:
        """Forget the baseline fix and reported points (new game or team)."""
        self.previous = None
        self._reported.clear()
