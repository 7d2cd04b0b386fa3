from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from httpstat.api.stats import build_router
from httpstat.config import Settings, get_settings
from httpstat.middleware import StatsMiddleware
from httpstat.observability.logging import configure_logging
from httpstat.registry import MetricsRegistry
from httpstat.stats import HTTPStats


def create_app(settings: Settings | None = None, registry: MetricsRegistry | None = None) -> FastAPI:
    """Demo server: a couple of routes, instrumented, with the stats endpoints mounted."""

    settings = settings or get_settings()
    configure_logging(settings.log_level, history_level=settings.history_log_level)

    stats = HTTPStats(
        namespace=settings.namespace,
        history=settings.history_options(),
        registry=registry,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            stats.close()

    app = FastAPI(title="httpstat", version="0.1.0", lifespan=lifespan)
    app.state.stats = stats
    app.add_middleware(StatsMiddleware, stats=stats, excluded_paths=settings.excluded_paths)
    app.include_router(build_router(stats))

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return "Hello from httpstat\n"

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
