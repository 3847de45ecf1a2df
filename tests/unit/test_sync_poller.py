"""Unit tests for the leaderboard sync poller."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest

from teamtrack.sync.poller import LeaderboardState, SyncPoller

pytestmark = pytest.mark.asyncio


@dataclass
class Row:
    id: str
    score: int


class FakeSource:
    """Returns queued snapshots, repeating the last one."""

    def __init__(self, *snapshots: list[Row]) -> None:
        self.snapshots = list(snapshots)
        self.calls: list[str] = []

    async def __call__(self, game_id: str) -> list[Row]:
        self.calls.append(game_id)
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0]


class TestRefresh:
    """Test a single pull."""

    async def test_ranks_and_overwrites(self):
        source = FakeSource([Row("a", 10), Row("b", 30)], [Row("a", 40)])
        poller = SyncPoller(source, "game-1", interval_seconds=1)

        state = await poller.refresh()
        assert [t.id for t in state.teams] == ["b", "a"]
        assert state.rank_of("a") == 2

        state = await poller.refresh()
        assert [t.id for t in state.teams] == ["a"]
        assert state.rank_of("b") is None
        assert source.calls == ["game-1", "game-1"]

    async def test_empty_snapshot_replaces_state(self):
        poller = SyncPoller(FakeSource([Row("a", 1)], []), "game-1")
        await poller.refresh()
        state = await poller.refresh()
        assert state.teams == []

    async def test_listeners_notified_after_overwrite(self):
        seen: list[LeaderboardState] = []
        poller = SyncPoller(FakeSource([Row("a", 1)]), "game-1")
        poller.add_listener(seen.append)
        state = await poller.refresh()
        assert seen == [state]
        assert poller.state is state

    async def test_removed_listener_not_called(self):
        seen: list[LeaderboardState] = []
        poller = SyncPoller(FakeSource([Row("a", 1)]), "game-1")
        poller.add_listener(seen.append)
        poller.remove_listener(seen.append)
        await poller.refresh()
        assert seen == []

    async def test_team_lookup(self):
        poller = SyncPoller(FakeSource([Row("a", 1), Row("b", 2)]), "game-1")
        state = await poller.refresh()
        assert state.team("a") == Row("a", 1)
        assert state.team("zzz") is None


class TestLifecycle:
    """Test start/stop scheduling."""

    async def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            SyncPoller(FakeSource([]), "game-1", interval_seconds=0)

    async def test_context_manager_polls_then_stops(self):
        source = FakeSource([Row("a", 1)])
        async with SyncPoller(source, "game-1", interval_seconds=0.01) as poller:
            assert poller.running
            await asyncio.sleep(0.05)
        assert not poller.running
        calls = len(source.calls)
        assert calls >= 2
        await asyncio.sleep(0.03)
        assert len(source.calls) == calls

    async def test_failed_tick_keeps_polling(self):
        attempts = 0

        async def flaky(game_id: str) -> list[Row]:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("boom")
            return [Row("a", 1)]

        poller = SyncPoller(flaky, "game-1", interval_seconds=0.01)
        poller.start()
        await asyncio.sleep(0.05)
        await poller.stop()
        assert attempts >= 2
        assert [t.id for t in poller.state.teams] == ["a"]

    async def test_stop_without_start(self):
        poller = SyncPoller(FakeSource([]), "game-1")
        await poller.stop()
        assert not poller.running

    async def test_start_twice_keeps_one_task(self):
        source = FakeSource([Row("a", 1)])
        poller = SyncPoller(source, "game-1", interval_seconds=10)
        poller.start()
        poller.start()
        await asyncio.sleep(0.01)
        await poller.stop()
        assert len(source.calls) == 1
