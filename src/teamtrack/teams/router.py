"""Team API endpoints.

Registration and membership, score and progress, game-wide views.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from teamtrack.config import get_settings
from teamtrack.database import get_session
from teamtrack.db.models import Team
from teamtrack.teams.members import load_member, load_members
from teamtrack.teams.ranking import rank_teams
from teamtrack.teams.schemas import (
    CompletionRequest,
    CompletionResponse,
    DiscoveryRequest,
    IncrementScoreRequest,
    JoinTeamRequest,
    LeaderboardEntry,
    LeaderboardResponse,
    MemberPhotoRequest,
    MemberResponse,
    MoveMemberRequest,
    MoveMemberResponse,
    RegisterTeamRequest,
    TeamListResponse,
    TeamResponse,
    UpdateTeamRequest,
)
from teamtrack.teams.service import (
    TeamNotFoundError,
    apply_score_delta,
    delete_game_teams,
    get_team,
    get_team_by_join_code,
    join_team,
    list_teams,
    move_member,
    record_completion,
    record_discovery,
    register_team,
    update_member_photo,
    update_team,
)

router = APIRouter(prefix="/api/v1", tags=["Teams"])


# ── Helpers ──


def build_team_response(team: Team) -> TeamResponse:
    """Build a TeamResponse from the ORM row, resolving stored member shapes."""
    return TeamResponse(
        id=team.id,
        game_id=team.game_id,
        name=team.name,
        join_code=team.join_code,
        photo_url=team.photo_url,
        members=[
            MemberResponse(name=m.name, device_id=m.device_id, photo=m.photo) for m in load_members(team.members)
        ],
        score=team.score,
        completed_point_ids=list(team.completed_point_ids or []),
        discovered_point_ids=list(team.discovered_point_ids or []),
        captain_device_id=team.captain_device_id,
        is_started=team.is_started,
        updated_at=team.updated_at,
    )


async def _fresh_team(db: AsyncSession, team_id: str) -> TeamResponse:
    team = await get_team(db, team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="Team not found")
    return build_team_response(team)


# ── Registration & membership ──


@router.put("/teams/{team_id}", response_model=TeamResponse)
async def register_team_endpoint(
    team_id: str,
    body: RegisterTeamRequest,
    db: AsyncSession = Depends(get_session),
):
    """Create or overwrite a team (idempotent upsert by id)."""
    try:
        team = await register_team(
            db,
            team_id=team_id,
            game_id=body.game_id,
            name=body.name,
            members=[load_member(m) for m in body.members],
            join_code=body.join_code,
            photo_url=body.photo_url,
            score=body.score,
            completed_point_ids=body.completed_point_ids,
            captain_device_id=body.captain_device_id,
            is_started=body.is_started,
            join_code_length=get_settings().join_code_length,
        )
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return build_team_response(team)


@router.post("/teams/join", response_model=TeamResponse)
async def join_team_endpoint(
    body: JoinTeamRequest,
    db: AsyncSession = Depends(get_session),
):
    """Join a team via its join code."""
    try:
        team = await join_team(db, body.join_code, body.member)
        await db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return build_team_response(team)


@router.get("/teams/by-code/{join_code}", response_model=TeamResponse)
async def get_team_by_code_endpoint(
    join_code: str,
    db: AsyncSession = Depends(get_session),
):
    """Resolve a join code to its team (device onboarding)."""
    team = await get_team_by_join_code(db, join_code)
    if team is None:
        raise HTTPException(status_code=404, detail="Team not found")
    return build_team_response(team)


@router.get("/teams/{team_id}", response_model=TeamResponse)
async def get_team_endpoint(
    team_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Get one team."""
    return await _fresh_team(db, team_id)


@router.patch("/teams/{team_id}", response_model=TeamResponse)
async def update_team_endpoint(
    team_id: str,
    body: UpdateTeamRequest,
    db: AsyncSession = Depends(get_session),
):
    """Rename, change captain or photo, or start the team."""
    try:
        team = await update_team(
            db,
            team_id,
            name=body.name,
            captain_device_id=body.captain_device_id,
            photo_url=body.photo_url,
            is_started=body.is_started,
        )
        await db.commit()
    except TeamNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return build_team_response(team)


@router.post("/teams/{team_id}/members/move", response_model=MoveMemberResponse)
async def move_member_endpoint(
    team_id: str,
    body: MoveMemberRequest,
    db: AsyncSession = Depends(get_session),
):
    """Move a member from this team to another team of the same game."""
    try:
        source, target = await move_member(db, team_id, body.target_team_id, body.device_id)
        await db.commit()
    except TeamNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return MoveMemberResponse(source=build_team_response(source), target=build_team_response(target))


@router.put("/teams/{team_id}/members/{device_id}/photo", response_model=TeamResponse)
async def update_member_photo_endpoint(
    team_id: str,
    device_id: str,
    body: MemberPhotoRequest,
    db: AsyncSession = Depends(get_session),
):
    """Set a member's photo."""
    try:
        team = await update_member_photo(db, team_id, device_id, body.photo)
        await db.commit()
    except TeamNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return build_team_response(team)


# ── Score & progress ──


@router.post("/rpc/increment_score", status_code=204)
async def increment_score_endpoint(
    body: IncrementScoreRequest,
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Atomic relative score change: score = score + amount."""
    await apply_score_delta(db, body.team_id, body.amount)
    await db.commit()
    return Response(status_code=204)


@router.post("/teams/{team_id}/completions", response_model=CompletionResponse)
async def record_completion_endpoint(
    team_id: str,
    body: CompletionRequest,
    db: AsyncSession = Depends(get_session),
):
    """Record a completed task and award its points once per team.

    ``points`` is added only when the point was not already completed.
    ``newScore`` overwrites the score instead (last writer wins).

    A failed write is reported with ``applied: false`` rather than an error
    status, so the device can carry on.
    """
    result = await record_completion(db, team_id, body.point_id, body.new_score, points=body.points)

    team = await get_team(db, team_id) if result.applied else None
    return CompletionResponse(
        applied=result.applied,
        awarded=result.awarded,
        reduced_payload=result.reduced_payload,
        warning=result.warning,
        team=build_team_response(team) if team else None,
    )


@router.post("/teams/{team_id}/discoveries", response_model=TeamResponse)
async def record_discovery_endpoint(
    team_id: str,
    body: DiscoveryRequest,
    db: AsyncSession = Depends(get_session),
):
    """Mark a point discovered for the whole team (permanent)."""
    team = await record_discovery(db, team_id, body.point_id)
    await db.commit()
    return build_team_response(team)


# ── Game views ──


@router.get("/games/{game_id}/teams", response_model=TeamListResponse)
async def list_teams_endpoint(
    game_id: str,
    db: AsyncSession = Depends(get_session),
):
    """All teams of a game. Empty when the store cannot be read."""
    teams = await list_teams(db, game_id)
    return TeamListResponse(teams=[build_team_response(t) for t in teams], total=len(teams))


@router.get("/games/{game_id}/leaderboard", response_model=LeaderboardResponse)
async def leaderboard_endpoint(
    game_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Teams ranked by score."""
    teams = await list_teams(db, game_id)
    entries = [
        LeaderboardEntry(
            rank=rank,
            team_id=team.id,
            name=team.name,
            score=team.score,
            completed_count=len(team.completed_point_ids or []),
            member_count=len(load_members(team.members)),
        )
        for rank, team in rank_teams(teams)
    ]
    return LeaderboardResponse(game_id=game_id, entries=entries, total=len(entries))


@router.delete("/games/{game_id}/teams", status_code=204)
async def delete_game_teams_endpoint(
    game_id: str,
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Remove all teams of a deleted game."""
    await delete_game_teams(db, game_id)
    await db.commit()
    return Response(status_code=204)
