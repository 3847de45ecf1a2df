"""Team progress store.

Rules:
- Score moves through three paths. ``apply_score_delta`` is a relative update
  evaluated by the database and is safe under any number of concurrent
  callers. ``record_completion(points=...)`` adds the task's points in the
  same locked write that records the completion, and only the first time the
  point is completed, so a task scores once per team. The absolute
  ``new_score`` overwrites the score with an absolute value the device
  computed from its last read; two teammates completing at the same moment
  can lose one increment. Older devices still send it.
- completed_point_ids and discovered_point_ids only ever grow.
- Registration is an idempotent upsert by team id.
- A device belongs to at most one team per game.
- Moving the captain out of a team promotes the next member, or clears the
  captain when the team is left empty.
- Reads degrade to an empty result on storage errors; they never raise.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamtrack.db.models import Team
from teamtrack.teams.join_codes import JOIN_CODE_LENGTH, generate_unique_join_code, normalize_join_code
from teamtrack.teams.members import TeamMember, dump_members, find_member, load_members, split_members

logger = logging.getLogger(__name__)

# SQLSTATE: undefined_column, undefined_table
_SCHEMA_MISMATCH_CODES = frozenset({"42703", "42P01"})
_SCHEMA_MISMATCH_HINTS = ("no such column", "has no column", "does not exist", "undefined column")

# Columns a completion write cannot do without.
_COMPLETION_REQUIRED = ("score", "completed_point_ids")


class TeamNotFoundError(ValueError):
    """The referenced team does not exist."""

    def __init__(self, team_id: str) -> None:
        super().__init__(f"Team not found: {team_id}")
        self.team_id = team_id


@dataclass
class CompletionResult:
    """Outcome of a completion write. ``applied`` False means the UI keeps going without it."""

    applied: bool
    team_id: str
    point_id: str
    completed_point_ids: list[str] = field(default_factory=list)
    score: int | None = None
    awarded: int = 0
    reduced_payload: bool = False
    warning: str | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _union(existing: Iterable[str] | None, new: Iterable[str] | None) -> list[str]:
    """Order-preserving set union."""
    return list(dict.fromkeys([*(existing or ()), *(new or ())]))


def is_schema_mismatch(exc: BaseException) -> bool:
    """Whether a storage error looks like a missing optional column or table."""
    orig = getattr(exc, "orig", None)
    if getattr(orig, "sqlstate", None) in _SCHEMA_MISMATCH_CODES:
        return True
    if getattr(orig, "pgcode", None) in _SCHEMA_MISMATCH_CODES:
        return True
    message = str(exc).lower()
    return any(hint in message for hint in _SCHEMA_MISMATCH_HINTS)


# ---------------------------------------------------------------------------
# Reads (degrade to empty)
# ---------------------------------------------------------------------------


async def get_team(db: AsyncSession, team_id: str) -> Team | None:
    """Fetch a team, always reloading from the store. None if missing or unreadable."""
    try:
        result = await db.execute(
            select(Team).where(Team.id == team_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.exception("get_team failed for %s", team_id)
        await db.rollback()
        return None


async def list_teams(db: AsyncSession, game_id: str) -> list[Team]:
    """All teams of a game in registration order. Empty on storage errors."""
    try:
        result = await db.execute(
            select(Team)
            .where(Team.game_id == game_id)
            .order_by(Team.created_at.asc(), Team.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())
    except SQLAlchemyError:
        logger.exception("list_teams failed for game %s", game_id)
        await db.rollback()
        return []


async def get_team_by_join_code(db: AsyncSession, join_code: str) -> Team | None:
    """Look up a team by its join code. None if missing or unreadable."""
    code = normalize_join_code(join_code)
    if not code:
        return None
    try:
        result = await db.execute(select(Team).where(Team.join_code == code).limit(1))
        return result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.exception("get_team_by_join_code failed")
        await db.rollback()
        return None


async def _load_for_update(db: AsyncSession, team_id: str) -> Team:
    """Row-locked read for the mutation paths (a no-op lock on SQLite)."""
    result = await db.execute(
        select(Team).where(Team.id == team_id).with_for_update().execution_options(populate_existing=True)
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise TeamNotFoundError(team_id)
    return team


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_team(
    db: AsyncSession,
    team_id: str,
    game_id: str,
    name: str,
    members: Iterable[TeamMember] = (),
    join_code: str | None = None,
    photo_url: str | None = None,
    score: int = 0,
    completed_point_ids: Iterable[str] = (),
    captain_device_id: str | None = None,
    is_started: bool = False,
    join_code_length: int = JOIN_CODE_LENGTH,
) -> Team:
    """Create or overwrite a team record by id.

    Calling twice with different payloads leaves one row matching the
    second call. The progress sets are unioned with what is stored, never
    replaced, so a late re-registration cannot erase completions.
    """
    result = await db.execute(
        select(Team).where(Team.id == team_id).with_for_update().execution_options(populate_existing=True)
    )
    team = result.scalar_one_or_none()
    code = normalize_join_code(join_code) if join_code else None
    now = _now()

    if team is None:
        team = Team(
            id=team_id,
            game_id=game_id,
            name=name,
            join_code=code or await generate_unique_join_code(db, join_code_length),
            photo_url=photo_url,
            members=dump_members(members),
            score=score,
            completed_point_ids=_union((), completed_point_ids),
            discovered_point_ids=[],
            captain_device_id=captain_device_id,
            is_started=is_started,
            created_at=now,
            updated_at=now,
        )
        db.add(team)
        logger.info("Team registered: %s (id=%s, game=%s)", name, team_id, game_id)
    else:
        team.game_id = game_id
        team.name = name
        team.join_code = code or team.join_code
        team.photo_url = photo_url
        team.members = dump_members(members)
        team.score = score
        team.completed_point_ids = _union(team.completed_point_ids, completed_point_ids)
        team.captain_device_id = captain_device_id
        team.is_started = is_started
        team.updated_at = now
        logger.info("Team re-registered: %s (id=%s, game=%s)", name, team_id, game_id)

    await db.flush()
    return team


# ---------------------------------------------------------------------------
# Score & progress
# ---------------------------------------------------------------------------


async def apply_score_delta(db: AsyncSession, team_id: str, amount: int) -> None:
    """``score = score + amount`` evaluated by the database."""
    result = await db.execute(
        update(Team)
        .where(Team.id == team_id)
        .values(score=Team.score + amount, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise TeamNotFoundError(team_id)
    await db.flush()
    logger.info("Score delta %+d applied to team %s", amount, team_id)


async def _write_progress(db: AsyncSession, team_id: str, payload: dict[str, object]) -> None:
    await db.execute(
        update(Team).where(Team.id == team_id).values(**payload).execution_options(synchronize_session=False)
    )
    await db.commit()


async def _lock_row(db: AsyncSession, team_id: str) -> None:
    """Take the team row's write lock before reading it.

    A no-op update locks the row on PostgreSQL and the database on SQLite,
    so a second completion waits here until the first one commits.
    """
    result = await db.execute(
        update(Team)
        .where(Team.id == team_id)
        .values(score=Team.score)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise TeamNotFoundError(team_id)


async def record_completion(
    db: AsyncSession,
    team_id: str,
    point_id: str,
    new_score: int | None = None,
    points: int = 0,
) -> CompletionResult:
    """Union ``point_id`` into the completed set and score it.

    ``points`` is added to the stored score in the same write, and only when
    ``point_id`` was not already completed; a second device completing the
    same task, or a retry of a write that landed, awards nothing.

    ``new_score`` is the absolute score an older device computed from its
    last read and wins over ``points``. The overwrite is last-writer-wins: a
    teammate's increment that landed between that read and this write is
    lost. None leaves the score to ``points``.

    Commits its own transaction. A write that fails on a missing optional
    column is retried once with only score and completed ids; any other
    failure is logged and reported as not applied.
    """
    try:
        await _lock_row(db, team_id)
        team = await _load_for_update(db, team_id)
        newly_completed = point_id not in (team.completed_point_ids or [])
        completed = _union(team.completed_point_ids, [point_id])
    except SQLAlchemyError as exc:
        logger.warning("Completion read failed for team %s: %s", team_id, exc)
        await db.rollback()
        return CompletionResult(applied=False, team_id=team_id, point_id=point_id, warning=str(exc))

    awarded = points if newly_completed and new_score is None else 0
    payload: dict[str, object] = {"completed_point_ids": completed, "updated_at": _now()}
    if new_score is not None:
        payload["score"] = new_score
    elif awarded:
        payload["score"] = Team.score + awarded

    try:
        await _write_progress(db, team_id, payload)
        logger.info("Team %s completed point %s (+%d)", team_id, point_id, awarded)
        return CompletionResult(
            applied=True,
            team_id=team_id,
            point_id=point_id,
            completed_point_ids=completed,
            score=new_score,
            awarded=awarded,
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        if not is_schema_mismatch(exc):
            logger.warning("Completion write failed for team %s point %s: %s", team_id, point_id, exc)
            return CompletionResult(applied=False, team_id=team_id, point_id=point_id, warning=str(exc))
        logger.warning("Completion write hit a schema mismatch, retrying with reduced payload: %s", exc)

    reduced = {key: value for key, value in payload.items() if key in _COMPLETION_REQUIRED}
    try:
        await _write_progress(db, team_id, reduced)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning("Reduced completion write failed for team %s point %s: %s", team_id, point_id, exc)
        return CompletionResult(applied=False, team_id=team_id, point_id=point_id, warning=str(exc))

    return CompletionResult(
        applied=True,
        team_id=team_id,
        point_id=point_id,
        completed_point_ids=completed,
        score=new_score,
        awarded=awarded,
        reduced_payload=True,
    )


async def record_discovery(db: AsyncSession, team_id: str, point_id: str) -> Team:
    """Mark a point discovered for the whole team. Permanent and idempotent."""
    team = await _load_for_update(db, team_id)
    if point_id not in (team.discovered_point_ids or []):
        team.discovered_point_ids = _union(team.discovered_point_ids, [point_id])
        team.updated_at = _now()
        await db.flush()
        logger.info("Team %s discovered point %s", team_id, point_id)
    return team


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


async def _team_of_device(db: AsyncSession, game_id: str, device_id: str) -> Team | None:
    """The team in ``game_id`` that lists ``device_id`` as a member, if any."""
    result = await db.execute(select(Team).where(Team.game_id == game_id))
    for team in result.scalars():
        if find_member(load_members(team.members), device_id) is not None:
            return team
    return None


async def join_team(db: AsyncSession, join_code: str, member: TeamMember) -> Team:
    """Add a device to the team behind ``join_code``.

    Joining a team the device is already on refreshes its name and photo.
    The first member to join a captainless team becomes captain.
    """
    code = normalize_join_code(join_code)
    result = await db.execute(select(Team).where(Team.join_code == code).with_for_update().limit(1))
    team = result.scalar_one_or_none()
    if team is None:
        raise ValueError("Invalid join code")

    if member.device_id:
        current = await _team_of_device(db, team.game_id, member.device_id)
        if current is not None and current.id != team.id:
            raise ValueError(f"Device already belongs to team '{current.name}' in this game")

    members, unreadable = split_members(team.members)
    idx = find_member(members, member.device_id)
    if idx is None:
        members.append(member)
    else:
        members[idx] = member

    team.members = dump_members(members, unreadable)
    if team.captain_device_id is None and member.device_id:
        team.captain_device_id = member.device_id
    team.updated_at = _now()
    await db.flush()
    logger.info("Device %s joined team %s", member.device_id or member.name, team.id)
    return team


async def move_member(
    db: AsyncSession,
    source_team_id: str,
    target_team_id: str,
    device_id: str,
) -> tuple[Team, Team]:
    """Move one member record from one team to another."""
    if source_team_id == target_team_id:
        raise ValueError("Source and target team are the same")

    # Lock in id order so two opposite moves cannot deadlock.
    locked = {tid: await _load_for_update(db, tid) for tid in sorted((source_team_id, target_team_id))}
    source, target = locked[source_team_id], locked[target_team_id]
    if source.game_id != target.game_id:
        raise ValueError("Teams belong to different games")

    source_members, source_unreadable = split_members(source.members)
    idx = find_member(source_members, device_id)
    if idx is None:
        raise ValueError("Device is not a member of the source team")
    moved = source_members.pop(idx)

    target_members, target_unreadable = split_members(target.members)
    existing = find_member(target_members, device_id)
    if existing is None:
        target_members.append(moved)
    else:
        target_members[existing] = moved

    if source.captain_device_id == device_id:
        source.captain_device_id = next((m.device_id for m in source_members if m.device_id), None)

    now = _now()
    source.members = dump_members(source_members, source_unreadable)
    target.members = dump_members(target_members, target_unreadable)
    source.updated_at = now
    target.updated_at = now
    await db.flush()
    logger.info("Moved device %s from team %s to team %s", device_id, source_team_id, target_team_id)
    return source, target


async def update_member_photo(db: AsyncSession, team_id: str, device_id: str, photo: str) -> Team:
    """Set one member's photo."""
    team = await _load_for_update(db, team_id)
    members, unreadable = split_members(team.members)
    idx = find_member(members, device_id)
    if idx is None:
        raise ValueError("Device is not a member of this team")
    members[idx] = members[idx].model_copy(update={"photo": photo})
    team.members = dump_members(members, unreadable)
    team.updated_at = _now()
    await db.flush()
    return team


# ---------------------------------------------------------------------------
# Team settings
# ---------------------------------------------------------------------------


async def update_team(
    db: AsyncSession,
    team_id: str,
    name: str | None = None,
    captain_device_id: str | None = None,
    photo_url: str | None = None,
    is_started: bool | None = None,
) -> Team:
    """Rename, change captain, change photo, or start a team."""
    team = await _load_for_update(db, team_id)

    if name is not None:
        team.name = name

    if captain_device_id is not None:
        if find_member(load_members(team.members), captain_device_id) is None:
            raise ValueError("Captain must be a member of the team")
        team.captain_device_id = captain_device_id

    if photo_url is not None:
        team.photo_url = photo_url

    if is_started is not None:
        if team.is_started and not is_started:
            raise ValueError("A started team cannot be stopped")
        team.is_started = is_started

    team.updated_at = _now()
    await db.flush()
    return team


async def delete_game_teams(db: AsyncSession, game_id: str) -> int:
    """Remove every team of a game (game deleted by the authoring layer)."""
    result = await db.execute(delete(Team).where(Team.game_id == game_id))
    await db.flush()
    logger.info("Deleted %d teams of game %s", result.rowcount, game_id)
    return result.rowcount
