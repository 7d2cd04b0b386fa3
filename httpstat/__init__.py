"""Request statistics for ASGI servers.

Wrap an app with :class:`HTTPStats` to count requests, errors, latency and
status codes, and optionally keep a rolling history of periodic snapshots.
"""

from httpstat.counters import CounterSet, CounterValues
from httpstat.history import (
    HistoryBuffer,
    HistoryOptions,
    HistorySampler,
    SamplerState,
    SamplerStateError,
    Snapshot,
)
from httpstat.middleware import ASGIResponseSink, StatsMiddleware
from httpstat.recorder import (
    Capability,
    CloseNotifier,
    Flusher,
    Hijacker,
    MessageForwarder,
    ResponseRecorder,
    ResponseSink,
    UnsupportedCapability,
)
from httpstat.registry import DuplicateMetricError, MetricsRegistry, UptimeVar
from httpstat.stats import HTTPStats

__all__ = [
    "ASGIResponseSink",
    "Capability",
    "CloseNotifier",
    "CounterSet",
    "CounterValues",
    "DuplicateMetricError",
    "Flusher",
    "HTTPStats",
    "Hijacker",
    "HistoryBuffer",
    "HistoryOptions",
    "HistorySampler",
    "MessageForwarder",
    "MetricsRegistry",
    "ResponseRecorder",
    "ResponseSink",
    "SamplerState",
    "SamplerStateError",
    "Snapshot",
    "StatsMiddleware",
    "UnsupportedCapability",
    "UptimeVar",
]
