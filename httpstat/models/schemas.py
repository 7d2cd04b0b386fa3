from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SnapshotOut(BaseModel):
    born: datetime
    cumulative_time_seconds: float
    cumulative_errors: int
    cumulative_requests: int
    request_delta: int
    time_delta: float
    requests_per_second: int


class HistoryResponse(BaseModel):
    enabled: bool
    sample_interval_s: float
    retention_window_s: float
    entries: list[SnapshotOut]


class CountersResponse(BaseModel):
    requestsTotal: int
    errorsTotal: int
    timeTotalSeconds: float
    statusCounts: dict[str, int]
