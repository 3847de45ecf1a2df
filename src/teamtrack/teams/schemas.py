"""Pydantic schemas for team endpoints.

Devices send camelCase (``gameId``, ``completedPointIds``); snake_case is
accepted as well. Responses use snake_case, matching the stored rows.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from teamtrack.teams.members import StoredMember, TeamMember


def _alias(snake: str, camel: str) -> AliasChoices:
    return AliasChoices(snake, camel)


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# --- Registration & membership ---


class RegisterTeamRequest(_Request):
    game_id: str = Field(..., min_length=1, max_length=64, validation_alias=_alias("game_id", "gameId"))
    name: str = Field(..., min_length=1, max_length=128)
    join_code: str | None = Field(None, max_length=16, validation_alias=_alias("join_code", "joinCode"))
    photo_url: str | None = Field(None, validation_alias=_alias("photo_url", "photoUrl"))
    # Accepts both stored member shapes; resolved to TeamMember before saving.
    members: list[StoredMember] = []
    score: int = 0
    completed_point_ids: list[str] = Field(
        default_factory=list, validation_alias=_alias("completed_point_ids", "completedPointIds")
    )
    captain_device_id: str | None = Field(
        None, max_length=64, validation_alias=_alias("captain_device_id", "captainDeviceId")
    )
    is_started: bool = Field(False, validation_alias=_alias("is_started", "isStarted"))


class JoinTeamRequest(_Request):
    join_code: str = Field(..., min_length=4, max_length=16, validation_alias=_alias("join_code", "joinCode"))
    member: TeamMember


class MoveMemberRequest(_Request):
    device_id: str = Field(..., min_length=1, max_length=64, validation_alias=_alias("device_id", "deviceId"))
    target_team_id: str = Field(
        ..., min_length=1, max_length=64, validation_alias=_alias("target_team_id", "targetTeamId")
    )


class UpdateTeamRequest(_Request):
    name: str | None = Field(None, min_length=1, max_length=128)
    captain_device_id: str | None = Field(
        None, max_length=64, validation_alias=_alias("captain_device_id", "captainDeviceId")
    )
    photo_url: str | None = Field(None, validation_alias=_alias("photo_url", "photoUrl"))
    is_started: bool | None = Field(None, validation_alias=_alias("is_started", "isStarted"))


class MemberPhotoRequest(_Request):
    photo: str = Field(..., min_length=1)


# --- Score & progress ---


class IncrementScoreRequest(_Request):
    team_id: str = Field(..., min_length=1, max_length=64, validation_alias=_alias("team_id", "teamId"))
    amount: int


class CompletionRequest(_Request):
    point_id: str = Field(..., min_length=1, max_length=64, validation_alias=_alias("point_id", "pointId"))
    new_score: int | None = Field(None, validation_alias=_alias("new_score", "newScore"))
    points: int = Field(0, ge=0, le=100_000)


class DiscoveryRequest(_Request):
    point_id: str = Field(..., min_length=1, max_length=64, validation_alias=_alias("point_id", "pointId"))


# --- Responses ---


class MemberResponse(BaseModel):
    name: str
    device_id: str
    photo: str | None = None


class TeamResponse(BaseModel):
    id: str
    game_id: str
    name: str
    join_code: str | None = None
    photo_url: str | None = None
    members: list[MemberResponse] = []
    score: int
    completed_point_ids: list[str] = []
    discovered_point_ids: list[str] = []
    captain_device_id: str | None = None
    is_started: bool
    updated_at: datetime | None = None


class TeamListResponse(BaseModel):
    teams: list[TeamResponse]
    total: int


class LeaderboardEntry(BaseModel):
    rank: int
    team_id: str
    name: str
    score: int
    completed_count: int
    member_count: int


class LeaderboardResponse(BaseModel):
    game_id: str
    entries: list[LeaderboardEntry]
    total: int


class CompletionResponse(BaseModel):
    applied: bool
    awarded: int = 0
    reduced_payload: bool = False
    warning: str | None = None
    team: TeamResponse | None = None


class MoveMemberResponse(BaseModel):
    source: TeamResponse
    target: TeamResponse
