from __future__ import annotations

import os
from typing import Any, Callable, Iterable

import structlog

from httpstat.counters import CounterSet
from httpstat.history import Clock, HistoryBuffer, HistoryOptions, HistorySampler, Snapshot, utcnow
from httpstat.middleware import StatsMiddleware
from httpstat.recorder import ResponseRecorder
from httpstat.registry import MetricsRegistry, UptimeVar


logger = structlog.get_logger("httpstat.stats")


def normalize_namespace(namespace: str) -> str:
    if not namespace:
        return ""
    return namespace.strip("_").lower() + "_"


class HTTPStats:
    """Request statistics for one monitored server.

    Counters are published on ``registry`` under ``httpstat_<namespace>``;
    leave ``namespace`` blank when only one collector shares the registry,
    otherwise use it to tell them apart (e.g. ``auth``, ``frontend``).

    History snapshots are off unless ``history.enabled`` is set. When they
    are on, call ``close()`` on shutdown so the sampling thread exits.
    """

    def __init__(
        self,
        namespace: str = "",
        history: HistoryOptions | None = None,
        registry: MetricsRegistry | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.namespace = normalize_namespace(namespace)
        self.prefix = "httpstat_" + self.namespace
        self.registry = registry if registry is not None else MetricsRegistry()
        self.counters = CounterSet()
        self.history_buffer = HistoryBuffer()
        self.history_options = (history or HistoryOptions(enabled=False)).normalized()
        self.sampler: HistorySampler | None = None

        started = (clock or utcnow)()
        self.started = started
        self.uptime = UptimeVar(started.timestamp())

        self._publish(
            {
                "pid": os.getpid(),
                "invoked": started.isoformat(timespec="seconds"),
                "invoked_unix": int(started.timestamp()),
                "invoked_seconds": self.uptime,
                "request_total_seconds": lambda: self.counters.time_total_seconds,
                "request_error_total": lambda: self.counters.errors_total,
                "request_total": lambda: self.counters.requests_total,
                "status_total": self.counters.status_counts,
            }
        )

        if self.history_options.enabled:
            opts = self.history_options
            if opts.sample_interval > opts.retention_window:
                logger.warning(
                    "history.retention_shorter_than_interval",
                    namespace=self.namespace,
                    sample_interval_s=opts.sample_interval.total_seconds(),
                    retention_window_s=opts.retention_window.total_seconds(),
                )
            self.sampler = HistorySampler(self.counters, self.history_buffer, opts, clock=clock)
            self.sampler.start()

    def _publish(self, variables: dict[str, Any]) -> None:
        for name, var in variables.items():
            self.registry.publish(self.prefix + name, var)

    @property
    def history_enabled(self) -> bool:
        return self.history_options.enabled

    def update(self, recorder: ResponseRecorder, elapsed_seconds: float, status: int | None = None) -> None:
        """Count one completed request. ``status`` overrides the recorded status."""

        self.counters.observe(recorder.status if status is None else status, elapsed_seconds)

    def record(self, app: Callable[..., Any], excluded_paths: Iterable[str] = ()) -> StatsMiddleware:
        """Wrap an ASGI app so every request it serves is counted.

        Wrap as early in the chain as possible: anything outside the wrapper
        isn't recorded. Writes a handler makes after it returns (e.g. from a
        background task) are not reflected in the counters.
        """

        return StatsMiddleware(app, self, excluded_paths=excluded_paths)

    def counters_snapshot(self) -> dict[str, Any]:
        values = self.counters.snapshot()
        return {
            "requestsTotal": values.requests_total,
            "errorsTotal": values.errors_total,
            "timeTotalSeconds": values.time_total_seconds,
            "statusCounts": values.status_counts,
        }

    def history(self) -> list[Snapshot]:
        return self.history_buffer.list()

    def to_dict(self) -> dict[str, Any]:
        """Every registry variable belonging to this collector."""

        return self.registry.snapshot(self.prefix)

    def close(self, timeout: float | None = 5.0) -> None:
        """Stop history sampling and wait for the sampler thread. Safe to call more than once.

        History is frozen once this returns, even if the thread outlives ``timeout``.
        """

        if self.sampler is None:
            return
        self.sampler.stop()
        if not self.sampler.join(timeout):
            logger.warning("history.sampler_join_timeout", timeout_s=timeout)

    def __enter__(self) -> HTTPStats:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
