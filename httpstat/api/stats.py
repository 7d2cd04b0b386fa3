from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from httpstat.config import get_settings
from httpstat.models.schemas import CountersResponse, HistoryResponse, SnapshotOut
from httpstat.stats import HTTPStats


def _ensure_enabled() -> None:
    if not get_settings().enable_stats_endpoint:
        raise HTTPException(status_code=404, detail="Not found")


def build_router(stats: HTTPStats) -> APIRouter:
    """JSON views over one collector, for dashboards and `curl`."""

    router = APIRouter(prefix="/stats", tags=["stats"])

    @router.get("")
    async def stats_vars() -> dict[str, Any]:
        _ensure_enabled()
        return stats.to_dict()

    @router.get("/counters", response_model=CountersResponse)
    async def stats_counters() -> CountersResponse:
        _ensure_enabled()
        return CountersResponse(**stats.counters_snapshot())

    @router.get("/history", response_model=HistoryResponse)
    async def stats_history() -> HistoryResponse:
        _ensure_enabled()
        opts = stats.history_options
        return HistoryResponse(
            enabled=stats.history_enabled,
            sample_interval_s=opts.sample_interval.total_seconds(),
            retention_window_s=opts.retention_window.total_seconds(),
            entries=[SnapshotOut(**entry.to_dict()) for entry in stats.history()],
        )

    return router
