"""Integration tests for devices playing against the real app."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from teamtrack.client.api import TeamSnapshot, TeamTrackClient
from teamtrack.client.session import DeviceSession
from teamtrack.client.settings import ClientSettings

pytestmark = pytest.mark.asyncio

DeviceFactory = Callable[[str], Awaitable[DeviceSession]]


@pytest_asyncio.fixture
async def device(store: None, register_team) -> AsyncGenerator[DeviceFactory, None]:
    """Build device sessions on the registered team "red", each with its own HTTP client."""
    from teamtrack.main import create_app

    app = create_app()
    await register_team("red", score=100)
    clients: list[AsyncClient] = []

    async def _device(device_id: str) -> DeviceSession:
        http = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(http)
        settings = ClientSettings(device_id=device_id, user_name=device_id.title(), last_game_id="game-1")
        api = TeamTrackClient(settings, http=http)
        team = await api.fetch_team("red")
        assert isinstance(team, TeamSnapshot)
        return DeviceSession(settings, api, team)

    yield _device

    for http in clients:
        await http.aclose()


class TestSharedTask:
    """Test teammates completing tasks from separate devices."""

    async def test_same_task_from_two_devices_scores_once(self, device: DeviceFactory):
        alice, bob = await device("dev-a"), await device("dev-b")

        results = await asyncio.gather(alice.complete_task("p1", 50), bob.complete_task("p1", 50))

        assert results == [True, True]
        team = await alice.api.fetch_team("red")
        assert team.score == 150
        assert team.completed_point_ids == ["p1"]

    async def test_one_after_the_other_scores_once(self, device: DeviceFactory):
        alice, bob = await device("dev-a"), await device("dev-b")

        await alice.complete_task("p1", 50)
        await bob.complete_task("p1", 50)

        assert alice.team.score == 150
        assert bob.team.score == 150

    async def test_different_tasks_both_score(self, device: DeviceFactory):
        alice, bob = await device("dev-a"), await device("dev-b")

        await asyncio.gather(alice.complete_task("p1", 50), bob.complete_task("p2", 30))

        team = await alice.api.fetch_team("red")
        assert team.score == 180
        assert set(team.completed_point_ids) == {"p1", "p2"}

    async def test_leaderboard_uses_last_game(self, device: DeviceFactory):
        alice = await device("dev-a")
        await alice.complete_task("p1", 50)

        teams = await alice.api.fetch_teams()

        assert [(t.id, t.score) for t in teams] == [("red", 150)]
