"""Scheduled pull of a game's teams into a device's local leaderboard.

Each tick fetches the full team list, ranks it, and replaces the local
state wholesale. There is no diffing and no push channel.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, TypeVar

import structlog

from teamtrack.teams.ranking import Scored, rank_teams

logger = structlog.get_logger()

DEFAULT_SYNC_INTERVAL_SECONDS = 10.0

T = TypeVar("T", bound=Scored)


@dataclass
class LeaderboardState(Generic[T]):
    """A ranked copy of the last snapshot pulled from the store."""

    game_id: str
    ranked: list[tuple[int, T]] = field(default_factory=list)
    refreshed_at: datetime | None = None

    @property
    def teams(self) -> list[T]:
        return [team for _, team in self.ranked]

    def rank_of(self, team_id: str) -> int | None:
        for rank, team in self.ranked:
            if getattr(team, "id", None) == team_id:
                return rank
        return None

    def team(self, team_id: str) -> T | None:
        for _, team in self.ranked:
            if getattr(team, "id", None) == team_id:
                return team
        return None


Listener = Callable[[LeaderboardState], None]


class SyncPoller(Generic[T]):
    """Polls ``fetch_teams(game_id)`` every ``interval_seconds`` while active.

    Use as an async context manager around the lifetime of a view, or call
    ``start()`` / ``await stop()`` explicitly.
    """

    def __init__(
        self,
        fetch_teams: Callable[[str], Awaitable[Sequence[T]]],
        game_id: str,
        interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._fetch_teams = fetch_teams
        self.game_id = game_id
        self.interval_seconds = interval_seconds
        self.state: LeaderboardState[T] = LeaderboardState(game_id=game_id)
        self._listeners: list[Listener] = []
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    async def refresh(self) -> LeaderboardState[T]:
        """Pull once and overwrite local state."""
        teams = await self._fetch_teams(self.game_id)
        self.state = LeaderboardState(
            game_id=self.game_id,
            ranked=rank_teams(teams),
            refreshed_at=datetime.now(timezone.utc),
        )
        for listener in list(self._listeners):
            listener(self.state)
        return self.state

    def start(self) -> None:
        """Begin polling. The first tick runs immediately."""
        if self._task is not None and not self._task.done():
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"sync-poller:{self.game_id}")
        logger.info("sync_poller_started", game_id=self.game_id, interval=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the scheduling task. State already applied is kept."""
        self._running = False
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("sync_poller_stopped", game_id=self.game_id)

    async def _run(self) -> None:
        while self._running:
            try:
                await self.refresh()
            except Exception:
                logger.exception("sync_tick_failed", game_id=self.game_id)
            await asyncio.sleep(self.interval_seconds)

    async def __aenter__(self) -> SyncPoller[T]:
        self.start()
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.stop()
