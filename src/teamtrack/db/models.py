"""ORM models for the shared game store.

Column names follow the row shapes the devices already exchange
(``teams``, ``team_locations``, ``task_attempts``).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from teamtrack.db.base import Base, JSONVariant


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


class Team(Base):
    """Authoritative team record: score, progress, membership."""

    __tablename__ = "teams"
    __table_args__ = (
        Index("idx_teams_game_id", "game_id"),
        Index("idx_teams_join_code", "join_code"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    game_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    join_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Raw JSON; resolve through teamtrack.teams.members before use.
    members: Mapped[list[Any]] = mapped_column(JSONVariant, nullable=False, default=list, server_default="[]")
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    completed_point_ids: Mapped[list[str]] = mapped_column(
        JSONVariant, nullable=False, default=list, server_default="[]"
    )
    discovered_point_ids: Mapped[list[str]] = mapped_column(
        JSONVariant, nullable=False, default=list, server_default="[]"
    )
    captain_device_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_started: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------


class LocationPing(Base):
    """One GPS breadcrumb. speed / is_impossible_travel are derived on insert."""

    __tablename__ = "team_locations"
    __table_args__ = (
        Index("idx_team_locations_team_game_ts", "team_id", "game_id", "timestamp"),
        Index("idx_team_locations_impossible", "game_id", "is_impossible_travel"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    game_id: Mapped[str] = mapped_column(String(64), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)
    speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_impossible_travel: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )


class TaskAttempt(Base):
    """Audit log of answers. Not authoritative for score."""

    __tablename__ = "task_attempts"
    __table_args__ = (Index("idx_task_attempts_team_game_ts", "team_id", "game_id", "timestamp"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    game_id: Mapped[str] = mapped_column(String(64), nullable=False)
    task_id: Mapped[str] = mapped_column(String(64), nullable=False)
    task_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)  # CORRECT | WRONG | SUBMITTED
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    answer: Mapped[Any | None] = mapped_column(JSONVariant, nullable=True)
