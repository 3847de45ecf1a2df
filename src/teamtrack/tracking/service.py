"""Location breadcrumbs, task attempts and instructor review queries.

Both tables are append-only. Inserts raise on storage errors; the review
queries degrade to empty results.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamtrack.db.models import LocationPing, TaskAttempt, Team
from teamtrack.geo.distance import Coordinate

logger = logging.getLogger(__name__)

ATTEMPT_STATUSES = frozenset({"CORRECT", "WRONG", "SUBMITTED"})


def _utc(ts: datetime | None) -> datetime:
    if ts is None:
        return datetime.now(timezone.utc)
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


async def record_location(
    db: AsyncSession,
    team_id: str,
    game_id: str,
    location: Coordinate,
    accuracy: float | None = None,
    timestamp: datetime | None = None,
) -> LocationPing:
    """Insert a ping. speed / is_impossible_travel are filled by the insert hook."""
    ping = LocationPing(
        team_id=team_id,
        game_id=game_id,
        latitude=location.lat,
        longitude=location.lng,
        accuracy=accuracy,
        timestamp=_utc(timestamp),
    )
    db.add(ping)
    await db.flush()
    if ping.is_impossible_travel:
        logger.info("Impossible travel for team %s in game %s (%.1f m/s)", team_id, game_id, ping.speed or 0)
    return ping


async def record_task_attempt(
    db: AsyncSession,
    team_id: str,
    game_id: str,
    task_id: str,
    location: Coordinate,
    status: str,
    task_title: str | None = None,
    answer: Any = None,  # noqa: ANN401
    timestamp: datetime | None = None,
) -> TaskAttempt:
    """Append one answer to the audit log."""
    if status not in ATTEMPT_STATUSES:
        raise ValueError(f"Invalid attempt status: {status}")

    attempt = TaskAttempt(
        team_id=team_id,
        game_id=game_id,
        task_id=task_id,
        task_title=task_title,
        latitude=location.lat,
        longitude=location.lng,
        status=status,
        answer=answer,
        timestamp=_utc(timestamp),
    )
    db.add(attempt)
    await db.flush()
    return attempt


async def fetch_team_history(db: AsyncSession, game_id: str) -> list[dict[str, Any]]:
    """Per-team movement path and task attempts for a game, oldest first.

    Returns one dict per team: team_id, team_name, path, attempts.
    """
    try:
        teams = (await db.execute(select(Team).where(Team.game_id == game_id).order_by(Team.name))).scalars().all()
        if not teams:
            return []

        pings = (
            await db.execute(
                select(LocationPing)
                .where(LocationPing.game_id == game_id)
                .order_by(LocationPing.timestamp.asc())
            )
        ).scalars().all()
        attempts = (
            await db.execute(
                select(TaskAttempt)
                .where(TaskAttempt.game_id == game_id)
                .order_by(TaskAttempt.timestamp.asc())
            )
        ).scalars().all()
    except SQLAlchemyError:
        logger.exception("fetch_team_history failed for game %s", game_id)
        await db.rollback()
        return []

    paths: dict[str, list[dict[str, Any]]] = {}
    for ping in pings:
        paths.setdefault(ping.team_id, []).append({
            "lat": ping.latitude,
            "lng": ping.longitude,
            "timestamp": _utc(ping.timestamp),
            "is_impossible_travel": ping.is_impossible_travel,
        })

    tasks: dict[str, list[dict[str, Any]]] = {}
    for att in attempts:
        tasks.setdefault(att.team_id, []).append({
            "id": att.id,
            "task_id": att.task_id,
            "task_title": att.task_title,
            "lat": att.latitude,
            "lng": att.longitude,
            "status": att.status,
            "timestamp": _utc(att.timestamp),
        })

    return [
        {
            "team_id": team.id,
            "team_name": team.name,
            "path": paths.get(team.id, []),
            "attempts": tasks.get(team.id, []),
        }
        for team in teams
    ]


async def fetch_impossible_travel_warnings(
    db: AsyncSession,
    game_id: str,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Flagged pings for a game, newest first, with the team name attached."""
    try:
        result = await db.execute(
            select(LocationPing, Team.name)
            .outerjoin(Team, Team.id == LocationPing.team_id)
            .where(
                LocationPing.game_id == game_id,
                LocationPing.is_impossible_travel.is_(True),
            )
            .order_by(LocationPing.timestamp.desc())
            .limit(limit)
        )
        rows = result.all()
    except SQLAlchemyError:
        logger.exception("fetch_impossible_travel_warnings failed for game %s", game_id)
        await db.rollback()
        return []

    return [
        {
            "team_id": ping.team_id,
            "team_name": team_name or "Unknown Team",
            "lat": ping.latitude,
            "lng": ping.longitude,
            "timestamp": _utc(ping.timestamp),
            "speed": float(ping.speed or 0),
        }
        for ping, team_name in rows
    ]
