"""Unit tests for the per-device game session."""

from __future__ import annotations

import pytest

from teamtrack.client.api import CompletionOutcome, TeamSnapshot
from teamtrack.client.session import DeviceSession
from teamtrack.client.settings import ClientSettings
from teamtrack.geo.distance import Coordinate
from teamtrack.geo.geofence import GameMode, GamePoint
from teamtrack.sync.poller import LeaderboardState
from teamtrack.teams.ranking import rank_teams

pytestmark = pytest.mark.asyncio

CENTER = Coordinate(52.0, 4.0)
METERS_PER_DEG_LAT = 111_194.9


def north(meters: float) -> Coordinate:
    return Coordinate(CENTER.lat + meters / METERS_PER_DEG_LAT, CENTER.lng)


class FakeApi:
    """Records writes; each write succeeds unless switched off."""

    def __init__(self, writes_ok: bool = True) -> None:
        self.writes_ok = writes_ok
        self.calls: list[tuple] = []

    async def fetch_teams(self, game_id: str) -> list[TeamSnapshot]:
        self.calls.append(("fetch_teams", game_id))
        return [
            TeamSnapshot(id="blue", game_id=game_id, name="Blue", score=500),
            TeamSnapshot(id="red", game_id=game_id, name="Red", score=120),
        ]

    async def record_completion(self, team_id: str, point_id: str, points: int = 0) -> CompletionOutcome:
        self.calls.append(("record_completion", team_id, point_id, points))
        if not self.writes_ok:
            return CompletionOutcome()
        return CompletionOutcome(applied=True, awarded=points)

    async def record_discovery(self, team_id: str, point_id: str) -> TeamSnapshot | None:
        self.calls.append(("record_discovery", team_id, point_id))
        if not self.writes_ok:
            return None
        return TeamSnapshot(id=team_id, game_id="game-1", name="Red", discovered_point_ids=[point_id])

    async def record_location(self, team_id, game_id, fix, accuracy=None) -> bool | None:
        self.calls.append(("record_location", team_id, game_id, fix, accuracy))
        return False if self.writes_ok else None


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(device_id="dev-1", default_reveal_radius_m=100)


@pytest.fixture
def team() -> TeamSnapshot:
    return TeamSnapshot(id="red", game_id="game-1", name="Red", score=100)


POINTS = [
    GamePoint(id="gated", location=CENTER, proximity_trigger_enabled=True),
    GamePoint(id="open"),
]


class TestVisibility:
    """Test the visible task list."""

    async def test_hidden_until_first_fix(self, settings, team):
        session = DeviceSession(settings, FakeApi(), team, POINTS)
        assert [p.id for p in session.visible_points()] == ["open"]

    async def test_instructor_sees_all(self, settings, team):
        session = DeviceSession(settings, FakeApi(), team, POINTS, mode=GameMode.INSTRUCTOR)
        assert len(session.visible_points()) == 2

    async def test_unknown_mode_plays_normally(self, settings, team):
        session = DeviceSession(settings, FakeApi(), team, POINTS, mode="SPECTATOR")
        assert [p.id for p in session.visible_points()] == ["open"]


class TestLocationFix:
    """Test discovery reporting from GPS fixes."""

    async def test_entry_reports_discovery_once(self, settings, team):
        api = FakeApi()
        session = DeviceSession(settings, api, team, POINTS)
        for d in (150, 80, 60):
            await session.on_location_fix(north(d))
        assert api.calls == [("record_discovery", "red", "gated")]
        assert session.team.discovered_point_ids == ["gated"]

    async def test_discovered_point_stays_visible_far_away(self, settings, team):
        session = DeviceSession(settings, FakeApi(), team, POINTS)
        await session.on_location_fix(north(10))
        await session.on_location_fix(north(5000))
        assert "gated" in [p.id for p in session.visible_points()]

    async def test_failed_discovery_write_kept_locally(self, settings, team):
        session = DeviceSession(settings, FakeApi(writes_ok=False), team, POINTS)
        discovered = await session.on_location_fix(north(10))
        assert [p.id for p in discovered] == ["gated"]
        assert session.team.discovered_point_ids == ["gated"]

    async def test_missing_fix_is_harmless(self, settings, team):
        session = DeviceSession(settings, FakeApi(), team, POINTS)
        assert await session.on_location_fix(None) == []
        assert session.last_fix is None


class TestCompleteTask:
    """Test scoring through the completion write."""

    async def test_one_call_carries_the_points(self, settings, team):
        api = FakeApi()
        session = DeviceSession(settings, api, team, POINTS)
        assert await session.complete_task("gated", 50)
        assert api.calls == [("record_completion", "red", "gated", 50)]
        assert session.team.score == 150
        assert session.team.completed_point_ids == ["gated"]

    async def test_store_team_replaces_local_copy(self, settings, team):
        api = FakeApi()
        fresh = team.model_copy(update={"score": 150, "completed_point_ids": ["gated"]})

        async def teammate_got_there_first(team_id, point_id, points=0):
            return CompletionOutcome(applied=True, awarded=0, team=fresh)

        api.record_completion = teammate_got_there_first
        session = DeviceSession(settings, api, team, POINTS)
        assert await session.complete_task("gated", 50)
        assert session.team.score == 150

    async def test_completed_point_awards_nothing(self, settings, team):
        api = FakeApi()
        session = DeviceSession(settings, api, team.model_copy(update={"completed_point_ids": ["gated"]}), POINTS)
        assert await session.complete_task("gated", 50)
        assert api.calls == []

    async def test_failed_writes_reported(self, settings, team):
        session = DeviceSession(settings, FakeApi(writes_ok=False), team, POINTS)
        assert not await session.complete_task("gated", 50)
        assert session.team.score == 100
        assert session.team.completed_point_ids == []


class TestLeaderboardAndPings:
    """Test sync application and breadcrumbs."""

    async def test_apply_leaderboard_replaces_team(self, settings, team):
        session = DeviceSession(settings, FakeApi(), team, POINTS)
        fresh = team.model_copy(update={"score": 300})
        other = TeamSnapshot(id="blue", game_id="game-1", name="Blue", score=200)
        session.apply_leaderboard(LeaderboardState(game_id="game-1", ranked=rank_teams([other, fresh])))
        assert session.team.score == 300
        assert session.rank == 1

    async def test_leaderboard_poller_feeds_session(self, team):
        settings = ClientSettings(device_id="dev-1", sync_interval_seconds=30)
        session = DeviceSession(settings, FakeApi(), team, POINTS)
        poller = session.leaderboard_poller()
        assert poller.interval_seconds == 30
        await poller.refresh()
        assert session.team.score == 120
        assert session.rank == 2

    async def test_ping_needs_a_fix(self, settings, team):
        api = FakeApi()
        session = DeviceSession(settings, api, team, POINTS)
        assert await session.send_location_ping() is None
        await session.on_location_fix(north(500))
        assert await session.send_location_ping(accuracy=5.0) is False
        assert api.calls[-1] == ("record_location", "red", "game-1", north(500), 5.0)
