from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from httpstat.config import get_settings
from httpstat.main import create_app

from fakes import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("HTTPSTAT_HISTORY_ENABLED", raising=False)
    monkeypatch.delenv("ENABLE_STATS_ENDPOINT", raising=False)
    monkeypatch.delenv("HTTPSTAT_HISTORY_LOG_LEVEL", raising=False)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def demo_app():
    app = create_app()
    yield app
    app.state.stats.close()


@pytest.fixture
async def api_client(demo_app) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=demo_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
