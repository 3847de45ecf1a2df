"""Proximity-gated task visibility.

Rules, in order:
- Authoring modes (EDIT, INSTRUCTOR) see everything; any other mode, known
  or not, plays by the rules below
- A point without a proximity trigger or without a location is always visible
- Otherwise no GPS fix means hidden
- A point the team already discovered stays visible (unless the author
  turned stays-visible off)
- Otherwise visible only inside the reveal radius
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from teamtrack.geo.distance import Coordinate, haversine_meters

DEFAULT_REVEAL_RADIUS_M = 100.0


class GameMode(str, Enum):
    PLAY = "PLAY"
    EDIT = "EDIT"
    INSTRUCTOR = "INSTRUCTOR"


AUTHORING_MODES = frozenset({GameMode.EDIT.value, GameMode.INSTRUCTOR.value})


@dataclass(frozen=True)
class GamePoint:
    """A task as the authoring layer hands it to the device."""

    id: str
    location: Coordinate | None = None
    proximity_trigger_enabled: bool = False
    proximity_reveal_radius: float | None = None
    proximity_stays_visible: bool = True
    is_unlocked: bool = False
    is_completed: bool = False


class TeamProgress(Protocol):
    """Anything carrying a team's per-point progress (ORM row, API schema, snapshot)."""

    completed_point_ids: list[str]
    discovered_point_ids: list[str]


def reveal_radius(point: GamePoint, default_radius: float = DEFAULT_REVEAL_RADIUS_M) -> float:
    """The point's own radius, or the configured default when unset or zero."""
    return point.proximity_reveal_radius or default_radius


def has_discovered(point: GamePoint, team: TeamProgress | None) -> bool:
    """Whether the point counts as already discovered for the team."""
    if point.is_unlocked or point.is_completed:
        return True
    if team is None:
        return False
    return point.id in (team.completed_point_ids or ()) or point.id in (team.discovered_point_ids or ())


def is_task_visible(
    point: GamePoint,
    user_location: Coordinate | None,
    team: TeamProgress | None = None,
    mode: GameMode | str = GameMode.PLAY,
    default_radius: float = DEFAULT_REVEAL_RADIUS_M,
) -> bool:
    """Decide whether ``point`` is revealed on this device right now."""
    # Any mode the device does not know plays by the normal rules.
    if getattr(mode, "value", mode) in AUTHORING_MODES:
        return True

    # Incomplete configuration never blocks play.
    if not point.proximity_trigger_enabled or point.location is None:
        return True

    # Cannot prove proximity without a fix.
    if user_location is None:
        return False

    in_range = haversine_meters(user_location, point.location) <= reveal_radius(point, default_radius)

    if point.proximity_stays_visible and has_discovered(point, team):
        return True

    return in_range


def filter_visible_points(
    points: Iterable[GamePoint],
    user_location: Coordinate | None,
    team: TeamProgress | None = None,
    mode: GameMode | str = GameMode.PLAY,
    default_radius: float = DEFAULT_REVEAL_RADIUS_M,
) -> list[GamePoint]:
    """Visible subset of ``points``, input order preserved."""
    return [p for p in points if is_task_visible(p, user_location, team, mode, default_radius)]
