"""Shared test fixtures.

Every test that touches the store gets its own SQLite file database with
the schema created from the ORM metadata. Redis is never initialized, so
rate limiting passes requests straight through.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from teamtrack.config import get_settings
from teamtrack.database import close_db, get_engine, get_session_factory, init_db
from teamtrack.db import models  # noqa: F401
from teamtrack.db.base import Base
from teamtrack.tracking.anticheat import install_travel_guard, uninstall_travel_guard

RegisterTeam = Callable[..., Awaitable[dict]]


@pytest.fixture
def database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[str, None, None]:
    url = f"sqlite+aiosqlite:///{tmp_path / 'teamtrack.db'}"
    monkeypatch.setenv("TEAMTRACK_DATABASE_URL", url)
    monkeypatch.setenv("TEAMTRACK_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def store(database_url: str) -> AsyncGenerator[None, None]:
    """Initialized engine with a fresh schema and the travel guard installed."""
    await init_db(database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    install_travel_guard(get_settings().max_travel_speed_mps)

    yield

    uninstall_travel_guard()
    await close_db()


@pytest_asyncio.fixture
async def db_session(store: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service calls and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(store: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the app (lifespan handled by the store fixture)."""
    from teamtrack.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register_team(client: AsyncClient) -> RegisterTeam:
    """Register a team through the API, returning the response body."""

    async def _register(team_id: str, game_id: str = "game-1", **fields: object) -> dict:
        payload = {"gameId": game_id, "name": fields.pop("name", team_id.title()), **fields}
        response = await client.put(f"/api/v1/teams/{team_id}", json=payload)
        assert response.status_code == 200, response.text
        return response.json()

    return _register
