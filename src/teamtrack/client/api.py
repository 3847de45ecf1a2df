"""HTTP client a device uses to talk to the game store.

Reads never raise: a network or payload failure is logged and comes back
as an empty result. A failed write is logged as a warning and reported
through the return value; nothing is queued for replay.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from teamtrack.client.settings import ClientSettings
from teamtrack.geo.distance import Coordinate

logger = structlog.get_logger()

API_PREFIX = "/api/v1"


class MemberSnapshot(BaseModel):
    name: str
    device_id: str = ""
    photo: str | None = None


class TeamSnapshot(BaseModel):
    """A team as last pulled from the store."""

    id: str
    game_id: str
    name: str
    join_code: str | None = None
    members: list[MemberSnapshot] = []
    score: int = 0
    completed_point_ids: list[str] = []
    discovered_point_ids: list[str] = []
    captain_device_id: str | None = None
    is_started: bool = False
    updated_at: datetime | None = None


class CompletionOutcome(BaseModel):
    """What the store did with a completion. ``team`` is the fresh team when applied."""

    applied: bool = False
    awarded: int = 0
    warning: str | None = None
    team: TeamSnapshot | None = None


class TeamTrackClient:
    """Thin async wrapper over the TeamTrack HTTP API."""

    def __init__(self, settings: ClientSettings, http: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
        )
        self._http.headers["X-Device-Id"] = settings.device_id

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> TeamTrackClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    # ── Reads ──

    async def fetch_teams(self, game_id: str | None = None) -> list[TeamSnapshot]:
        """All teams of a game, by default the last one opened. Empty on any failure."""
        game_id = game_id or self.settings.last_game_id
        if not game_id:
            logger.warning("fetch_teams_without_game")
            return []
        try:
            response = await self._http.get(f"{API_PREFIX}/games/{game_id}/teams")
            response.raise_for_status()
            return [TeamSnapshot.model_validate(t) for t in response.json().get("teams", [])]
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.warning("fetch_teams_failed", game_id=game_id, error=str(exc))
            return []

    async def fetch_team(self, team_id: str) -> TeamSnapshot | None:
        """One team, or None on any failure."""
        try:
            response = await self._http.get(f"{API_PREFIX}/teams/{team_id}")
            response.raise_for_status()
            return TeamSnapshot.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.warning("fetch_team_failed", team_id=team_id, error=str(exc))
            return None

    # ── Writes ──

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response | None:
        try:
            response = await self._http.post(f"{API_PREFIX}{path}", json=payload)
            response.raise_for_status()
            return response
        except httpx.HTTPError as exc:
            logger.warning("write_failed", path=path, error=str(exc))
            return None

    async def join_team(self, join_code: str, photo: str | None = None) -> TeamSnapshot | None:
        """Join the team behind ``join_code`` as this device. None if the store refused."""
        member = {"name": self.settings.user_name, "deviceId": self.settings.device_id, "photo": photo}
        response = await self._post("/teams/join", {"join_code": join_code, "member": member})
        if response is None:
            return None
        try:
            return TeamSnapshot.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("join_response_invalid", join_code=join_code, error=str(exc))
            return None

    async def record_completion(
        self,
        team_id: str,
        point_id: str,
        points: int = 0,
        new_score: int | None = None,
    ) -> CompletionOutcome:
        """Record a completed point, adding ``points`` if the team had not completed it yet."""
        payload: dict[str, Any] = {"point_id": point_id, "points": points}
        if new_score is not None:
            payload["new_score"] = new_score
        response = await self._post(f"/teams/{team_id}/completions", payload)
        if response is None:
            return CompletionOutcome()
        try:
            outcome = CompletionOutcome.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("completion_response_invalid", team_id=team_id, error=str(exc))
            return CompletionOutcome()
        if not outcome.applied:
            logger.warning("completion_not_applied", team_id=team_id, point_id=point_id, warning=outcome.warning)
        return outcome

    async def record_discovery(self, team_id: str, point_id: str) -> TeamSnapshot | None:
        """Report a discovery; returns the updated team, or None if the write failed."""
        response = await self._post(f"/teams/{team_id}/discoveries", {"point_id": point_id})
        if response is None:
            return None
        try:
            return TeamSnapshot.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("discovery_response_invalid", team_id=team_id, error=str(exc))
            return None

    async def record_location(
        self,
        team_id: str,
        game_id: str,
        fix: Coordinate,
        accuracy: float | None = None,
    ) -> bool | None:
        """Send a ping. Returns the server's impossible-travel flag, None if the write failed."""
        response = await self._post(
            "/locations",
            {"team_id": team_id, "game_id": game_id, "lat": fix.lat, "lng": fix.lng, "accuracy": accuracy},
        )
        if response is None:
            return None
        return bool(response.json().get("is_impossible_travel", False))
