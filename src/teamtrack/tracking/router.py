"""Tracking API endpoints: pings, attempts and instructor review."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from teamtrack.config import get_settings
from teamtrack.database import get_session
from teamtrack.geo.distance import Coordinate
from teamtrack.tracking.schemas import (
    GameHistoryResponse,
    LocationPingRequest,
    LocationPingResponse,
    TaskAttemptRequest,
    TaskAttemptResponse,
    TeamHistoryResponse,
    TravelWarning,
    TravelWarningsResponse,
)
from teamtrack.tracking.service import (
    fetch_impossible_travel_warnings,
    fetch_team_history,
    record_location,
    record_task_attempt,
)

router = APIRouter(prefix="/api/v1", tags=["Tracking"])


@router.post("/locations", response_model=LocationPingResponse, status_code=201)
async def record_location_endpoint(
    body: LocationPingRequest,
    db: AsyncSession = Depends(get_session),
):
    """Store a GPS breadcrumb. The travel flag is returned for information only."""
    ping = await record_location(
        db,
        team_id=body.team_id,
        game_id=body.game_id,
        location=Coordinate(body.lat, body.lng),
        accuracy=body.accuracy,
        timestamp=body.timestamp,
    )
    await db.commit()
    return LocationPingResponse(
        id=ping.id,
        timestamp=ping.timestamp,
        speed=ping.speed,
        is_impossible_travel=ping.is_impossible_travel,
    )


@router.post("/attempts", response_model=TaskAttemptResponse, status_code=201)
async def record_attempt_endpoint(
    body: TaskAttemptRequest,
    db: AsyncSession = Depends(get_session),
):
    """Append a task attempt to the audit log."""
    try:
        attempt = await record_task_attempt(
            db,
            team_id=body.team_id,
            game_id=body.game_id,
            task_id=body.task_id,
            location=Coordinate(body.lat, body.lng),
            status=body.status,
            task_title=body.task_title,
            answer=body.answer,
            timestamp=body.timestamp,
        )
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TaskAttemptResponse(
        id=attempt.id, task_id=attempt.task_id, status=attempt.status, timestamp=attempt.timestamp
    )


@router.get("/games/{game_id}/history", response_model=GameHistoryResponse)
async def game_history_endpoint(
    game_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Movement paths and attempts per team, for replay."""
    history = await fetch_team_history(db, game_id)
    return GameHistoryResponse(game_id=game_id, teams=[TeamHistoryResponse(**h) for h in history])


@router.get("/games/{game_id}/travel-warnings", response_model=TravelWarningsResponse)
async def travel_warnings_endpoint(
    game_id: str,
    limit: int | None = Query(None, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
):
    """Pings flagged as impossible travel, newest first."""
    warnings = await fetch_impossible_travel_warnings(
        db, game_id, limit=limit or get_settings().travel_warnings_limit
    )
    return TravelWarningsResponse(game_id=game_id, warnings=[TravelWarning(**w) for w in warnings])
