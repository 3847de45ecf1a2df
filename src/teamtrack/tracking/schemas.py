"""Pydantic schemas for tracking endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class LocationPingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_id: str = Field(..., min_length=1, max_length=64, validation_alias=AliasChoices("team_id", "teamId"))
    game_id: str = Field(..., min_length=1, max_length=64, validation_alias=AliasChoices("game_id", "gameId"))
    lat: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(..., ge=-180, le=180, validation_alias=AliasChoices("lng", "longitude"))
    accuracy: float | None = Field(None, ge=0)
    timestamp: datetime | None = None


class LocationPingResponse(BaseModel):
    id: str
    timestamp: datetime
    speed: float | None = None
    is_impossible_travel: bool


class TaskAttemptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_id: str = Field(..., min_length=1, max_length=64, validation_alias=AliasChoices("team_id", "teamId"))
    game_id: str = Field(..., min_length=1, max_length=64, validation_alias=AliasChoices("game_id", "gameId"))
    task_id: str = Field(..., min_length=1, max_length=64, validation_alias=AliasChoices("task_id", "taskId"))
    task_title: str | None = Field(None, validation_alias=AliasChoices("task_title", "taskTitle"))
    lat: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(..., ge=-180, le=180, validation_alias=AliasChoices("lng", "longitude"))
    status: Literal["CORRECT", "WRONG", "SUBMITTED"]
    answer: Any = None
    timestamp: datetime | None = None


class TaskAttemptResponse(BaseModel):
    id: str
    task_id: str
    status: str
    timestamp: datetime


class PathPoint(BaseModel):
    lat: float
    lng: float
    timestamp: datetime
    is_impossible_travel: bool = False


class AttemptPoint(BaseModel):
    id: str
    task_id: str
    task_title: str | None = None
    lat: float
    lng: float
    status: str
    timestamp: datetime


class TeamHistoryResponse(BaseModel):
    team_id: str
    team_name: str
    path: list[PathPoint]
    attempts: list[AttemptPoint]


class GameHistoryResponse(BaseModel):
    game_id: str
    teams: list[TeamHistoryResponse]


class TravelWarning(BaseModel):
    team_id: str
    team_name: str
    lat: float
    lng: float
    timestamp: datetime
    speed: float


class TravelWarningsResponse(BaseModel):
    game_id: str
    warnings: list[TravelWarning]
