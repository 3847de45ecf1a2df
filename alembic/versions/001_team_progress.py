"""Team progress: teams, location breadcrumbs, task attempts.

Revision ID: 001_team_progress
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_team_progress"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the shared game store tables."""
    # --- teams ---
    op.create_table(
        "teams",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("game_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("join_code", sa.String(16), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("members", postgresql.JSONB(), server_default="[]", nullable=False),
        sa.Column("score", sa.Integer(), server_default="0", nullable=False),
        sa.Column("completed_point_ids", postgresql.JSONB(), server_default="[]", nullable=False),
        sa.Column("discovered_point_ids", postgresql.JSONB(), server_default="[]", nullable=False),
        sa.Column("captain_device_id", sa.String(64), nullable=True),
        sa.Column("is_started", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=True),
    )
    op.create_index("idx_teams_game_id", "teams", ["game_id"])
    op.create_index("idx_teams_join_code", "teams", ["join_code"])

    # --- team_locations ---
    op.create_table(
        "team_locations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("team_id", sa.String(64), nullable=False),
        sa.Column("game_id", sa.String(64), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("speed", sa.Float(), nullable=True),
        sa.Column("is_impossible_travel", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=True),
    )
    op.create_index("idx_team_locations_team_game_ts", "team_locations", ["team_id", "game_id", "timestamp"])
    # Instructor review only reads flagged rows.
    op.create_index(
        "idx_team_locations_impossible",
        "team_locations",
        ["game_id", "is_impossible_travel"],
    )

    # --- task_attempts ---
    op.create_table(
        "task_attempts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("team_id", sa.String(64), nullable=False),
        sa.Column("game_id", sa.String(64), nullable=False),
        sa.Column("task_id", sa.String(64), nullable=False),
        sa.Column("task_title", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("answer", postgresql.JSONB(), nullable=True),
    )
    op.create_index("idx_task_attempts_team_game_ts", "task_attempts", ["team_id", "game_id", "timestamp"])
    op.execute(
        "ALTER TABLE task_attempts ADD CONSTRAINT ck_task_attempts_status "
        "CHECK (status IN ('CORRECT', 'WRONG', 'SUBMITTED'))"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS task_attempts CASCADE")
    op.execute("DROP TABLE IF EXISTS team_locations CASCADE")
    op.execute("DROP TABLE IF EXISTS teams CASCADE")
