"""Impossible-travel detection on location ping insert.

Runs inside the flush that inserts a ``LocationPing`` (a SQLAlchemy
``before_insert`` mapper event), so every writer goes through it and the
device never computes its own flag. The previous ping for the same
team+game is the baseline; speed above the configured ceiling sets
``is_impossible_travel``. The flag is advisory: it is stored for instructor
review and never rejects the insert.

Known race: two pings for the same team flushed at the same moment can
both read the same predecessor.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import event, select
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapper

from teamtrack.db.models import LocationPing
from teamtrack.geo.distance import Coordinate, haversine_meters

logger = structlog.get_logger()

DEFAULT_MAX_SPEED_MPS = 2.5


@dataclass(frozen=True)
class TravelAssessment:
    speed: float | None
    is_impossible_travel: bool


NO_BASELINE = TravelAssessment(speed=None, is_impossible_travel=False)


def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


def assess_travel(
    previous: Coordinate,
    previous_ts: datetime,
    current: Coordinate,
    current_ts: datetime,
    max_speed_mps: float = DEFAULT_MAX_SPEED_MPS,
) -> TravelAssessment:
    """Speed between two fixes and whether it exceeds ``max_speed_mps``.

    Non-positive elapsed time (duplicate or out-of-order timestamps) yields
    no speed and no flag.
    """
    elapsed = (_as_utc(current_ts) - _as_utc(previous_ts)).total_seconds()
    if elapsed <= 0:
        return NO_BASELINE
    speed = haversine_meters(previous, current) / elapsed
    return TravelAssessment(speed=speed, is_impossible_travel=speed > max_speed_mps)


class ImpossibleTravelGuard:
    """``before_insert`` listener that fills speed and is_impossible_travel."""

    def __init__(self, max_speed_mps: float = DEFAULT_MAX_SPEED_MPS) -> None:
        self.max_speed_mps = max_speed_mps

    def __call__(self, _mapper: Mapper, connection: Connection, target: LocationPing) -> None:
        query = (
            select(LocationPing.latitude, LocationPing.longitude, LocationPing.timestamp)
            .where(
                LocationPing.team_id == target.team_id,
                LocationPing.game_id == target.game_id,
            )
            .order_by(LocationPing.timestamp.desc())
            .limit(1)
        )
        if target.id is not None:
            query = query.where(LocationPing.id != target.id)
        prior = connection.execute(query).first()

        assessment = NO_BASELINE
        if prior is not None:
            try:
                assessment = assess_travel(
                    Coordinate(float(prior.latitude), float(prior.longitude)),
                    prior.timestamp,
                    Coordinate(float(target.latitude), float(target.longitude)),
                    target.timestamp,
                    self.max_speed_mps,
                )
            except (TypeError, ValueError, ArithmeticError, AttributeError):
                # Malformed prior row: keep the ping, skip the flag.
                logger.warning("travel_check_failed", team_id=target.team_id, game_id=target.game_id, exc_info=True)

        target.speed = assessment.speed
        target.is_impossible_travel = assessment.is_impossible_travel
        if assessment.is_impossible_travel:
            logger.info(
                "impossible_travel_flagged",
                team_id=target.team_id,
                game_id=target.game_id,
                speed_mps=round(assessment.speed or 0, 2),
                ceiling_mps=self.max_speed_mps,
            )


_installed: ImpossibleTravelGuard | None = None


def install_travel_guard(max_speed_mps: float = DEFAULT_MAX_SPEED_MPS) -> ImpossibleTravelGuard:
    """Register the guard on LocationPing inserts, replacing any earlier one."""
    global _installed  # noqa: PLW0603
    uninstall_travel_guard()
    guard = ImpossibleTravelGuard(max_speed_mps)
    event.listen(LocationPing, "before_insert", guard)
    _installed = guard
    return guard


def uninstall_travel_guard() -> None:
    """Remove the installed guard, if any."""
    global _installed  # noqa: PLW0603
    if _installed is not None and event.contains(LocationPing, "before_insert", _installed):
        event.remove(LocationPing, "before_insert", _installed)
    _installed = None


def get_travel_guard() -> ImpossibleTravelGuard | None:
    return _installed
