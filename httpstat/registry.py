from __future__ import annotations

import time
from threading import Lock
from typing import Any, Callable, Union


MetricVar = Union[Callable[[], Any], int, float, str, dict]


class DuplicateMetricError(ValueError):
    """Raised when a metric name is published twice on the same registry."""


class UptimeVar:
    """Whole seconds elapsed since the variable was created."""

    def __init__(self, started: float | None = None) -> None:
        self.started = time.time() if started is None else float(started)

    def __call__(self) -> int:
        return int(time.time() - self.started)


class MetricsRegistry:
    """Named metric variables owned by the caller.

    Nothing here is process-global: each collector is handed a registry, and
    several collectors may share one as long as their names don't collide.
    A variable is either a plain value or a zero-argument callable that is
    evaluated at read time.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._vars: dict[str, MetricVar] = {}

    def publish(self, name: str, var: MetricVar) -> None:
        with self._lock:
            if name in self._vars:
                raise DuplicateMetricError(f"metric {name!r} is already published")
            self._vars[name] = var

    def unpublish(self, name: str) -> None:
        with self._lock:
            self._vars.pop(name, None)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._vars

    def get(self, name: str) -> Any:
        with self._lock:
            var = self._vars[name]
        return var() if callable(var) else var

    def names(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(name for name in self._vars if name.startswith(prefix))

    def items(self, prefix: str = "") -> list[tuple[str, MetricVar]]:
        with self._lock:
            items = [(name, var) for name, var in self._vars.items() if name.startswith(prefix)]
        return sorted(items, key=lambda kv: kv[0])

    def snapshot(self, prefix: str = "") -> dict[str, Any]:
        """Evaluate every variable whose name starts with ``prefix``."""

        # Callables run outside the lock; they may take locks of their own.
        return {name: (var() if callable(var) else var) for name, var in self.items(prefix)}
