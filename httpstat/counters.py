from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock


@dataclass(frozen=True)
class CounterValues:
    """Point-in-time read of a CounterSet."""

    requests_total: int = 0
    errors_total: int = 0
    time_total_seconds: float = 0.0
    status_counts: dict[str, int] = field(default_factory=dict)


class CounterSet:
    """Thread-safe, process-local cumulative request counters (resets on restart).

    Every field is monotonically non-decreasing. Each operation holds the lock
    only for a single arithmetic update, so concurrent callers never lose an
    increment. A snapshot is not atomic across fields; a reader may see one
    counter updated and another not yet.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._requests_total: int = 0
        self._errors_total: int = 0
        self._time_total_seconds: float = 0.0
        self._status_counts: Counter[str] = Counter()

    def add_time(self, seconds: float) -> None:
        with self._lock:
            self._time_total_seconds += float(seconds)

    def inc_requests(self) -> None:
        with self._lock:
            self._requests_total += 1

    def inc_status(self, status_key: str) -> None:
        with self._lock:
            self._status_counts[status_key] += 1

    def inc_errors(self) -> None:
        with self._lock:
            self._errors_total += 1

    def observe(self, status_code: int, elapsed_seconds: float) -> None:
        """Apply the update for one completed request."""

        self.add_time(elapsed_seconds)
        self.inc_requests()
        self.inc_status(str(status_code))
        if status_code >= 500:
            self.inc_errors()

    @property
    def requests_total(self) -> int:
        with self._lock:
            return self._requests_total

    @property
    def errors_total(self) -> int:
        with self._lock:
            return self._errors_total

    @property
    def time_total_seconds(self) -> float:
        with self._lock:
            return self._time_total_seconds

    def status_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._status_counts)

    def snapshot(self) -> CounterValues:
        # Read field by field; cross-field skew is tolerated.
        return CounterValues(
            requests_total=self.requests_total,
            errors_total=self.errors_total,
            time_total_seconds=self.time_total_seconds,
            status_counts=self.status_counts(),
        )
