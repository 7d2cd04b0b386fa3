"""Periodic snapshots of the request counters.

History is optional. When enabled, a single background thread samples the
collector's CounterSet every ``sample_interval`` and appends an immutable
Snapshot to a HistoryBuffer. Snapshots older than ``retention_window`` are
trimmed from the head of the buffer before each new one is added.
"""

from __future__ import annotations

import enum
import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timedelta, timezone
from threading import Lock, RLock
from typing import Any, Callable, Iterator

import structlog

from httpstat.counters import CounterSet


MIN_SAMPLE_INTERVAL = timedelta(seconds=5)
MIN_RETENTION_WINDOW = timedelta(seconds=10)
DEFAULT_SAMPLE_INTERVAL = timedelta(seconds=5)
DEFAULT_RETENTION_WINDOW = timedelta(minutes=5)

Clock = Callable[[], datetime]

logger = structlog.get_logger("httpstat.history")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HistoryOptions:
    """How often to snapshot, and how long snapshots are kept.

    A sample interval of 10 seconds with a retention window of 5 minutes
    keeps roughly (5 * 60) / 10, or 30, snapshots.
    """

    enabled: bool = False
    sample_interval: timedelta = DEFAULT_SAMPLE_INTERVAL
    retention_window: timedelta = DEFAULT_RETENTION_WINDOW

    def normalized(self) -> HistoryOptions:
        """Apply the floors.

        An interval under 5s is raised to 5s. A retention window under 10s
        (including an unset, zero window) falls back to the 5 minute default.
        """

        interval = self.sample_interval
        retention = self.retention_window
        if interval < MIN_SAMPLE_INTERVAL:
            interval = MIN_SAMPLE_INTERVAL
        if retention < MIN_RETENTION_WINDOW:
            retention = DEFAULT_RETENTION_WINDOW
        return replace(self, sample_interval=interval, retention_window=retention)


@dataclass(frozen=True)
class Snapshot:
    """The collector's counters at one point in time, plus deltas against the previous snapshot."""

    born: datetime
    cumulative_time_seconds: float = 0.0
    cumulative_errors: int = 0
    cumulative_requests: int = 0
    request_delta: int = 0
    time_delta: float = 0.0
    requests_per_second: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class HistoryBuffer:
    """Time-ordered snapshots, oldest first.

    Writers serialize on a lock and publish a new immutable tuple; readers
    grab whatever tuple is current without locking. A reader therefore never
    waits on another reader, never sees a half-applied write, and keeps its
    copy untouched by later truncation or appends.
    """

    def __init__(self) -> None:
        self._write_lock = RLock()
        self._entries: tuple[Snapshot, ...] = ()

    def __len__(self) -> int:
        return len(self._entries)

    def list(self) -> list[Snapshot]:
        """Point-in-time copy of the entries, oldest first.

        Reads do not filter by age. Expired entries are only evicted when the
        sampler ticks, so between two ticks the oldest entry returned may be
        up to one sample interval older than the retention window.
        """

        return list(self._entries)

    @contextmanager
    def writing(self) -> Iterator[HistoryBuffer]:
        """Hold the write lock across several writes so they land as one unit."""

        with self._write_lock:
            yield self

    def last(self) -> Snapshot | None:
        entries = self._entries
        return entries[-1] if entries else None

    def append(self, snapshot: Snapshot) -> None:
        with self._write_lock:
            if self._entries and snapshot.born <= self._entries[-1].born:
                raise ValueError("snapshots must be appended in ascending 'born' order")
            self._entries = (*self._entries, snapshot)

    def evict_older_than(self, now: datetime, window: timedelta) -> int:
        """Drop the oldest entries whose age exceeds ``window``; return how many were dropped.

        Stops at the first entry still inside the window, so only a
        contiguous prefix is ever removed.
        """

        with self._write_lock:
            cut = 0
            for entry in self._entries:
                if now - entry.born <= window:
                    break
                cut += 1
            if cut:
                self._entries = self._entries[cut:]
            return cut


class SamplerState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    STOPPED = "stopped"


class SamplerStateError(RuntimeError):
    """Raised when a stopped sampler is asked to start again."""


class HistorySampler:
    """Background task which snapshots a CounterSet into a HistoryBuffer.

    Lifecycle is ``UNINITIALIZED -> ACTIVE -> STOPPED``. ``stop()`` may be
    called any number of times; ``start()`` after a stop is an error.
    """

    def __init__(
        self,
        counters: CounterSet,
        buffer: HistoryBuffer,
        options: HistoryOptions,
        clock: Clock | None = None,
    ) -> None:
        self.options = options.normalized()
        self._counters = counters
        self._buffer = buffer
        self._clock = clock or utcnow
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = SamplerState.UNINITIALIZED
        self._state_lock = Lock()

    @property
    def state(self) -> SamplerState:
        return self._state

    @property
    def cancelled(self) -> threading.Event:
        return self._cancel

    def sample(self) -> Snapshot | None:
        """Run one tick: evict expired entries, read the counters, append a snapshot.

        Returns None without touching the buffer once the sampler is stopped.
        """

        now = self._clock()
        # Keep the divisor positive for sub-second intervals.
        interval_s = max(1, int(self.options.sample_interval.total_seconds()))

        # stop() sets the cancel flag under this same lock, so a tick either
        # commits entirely before stop() returns or not at all.
        with self._buffer.writing() as buffer:
            if self._cancel.is_set():
                return None
            buffer.evict_older_than(now, self.options.retention_window)

            values = self._counters.snapshot()
            request_delta = 0
            time_delta = 0.0
            rps = 0

            previous = buffer.last()
            if previous is not None:
                request_delta = values.requests_total - previous.cumulative_requests
                time_delta = values.time_total_seconds - previous.cumulative_time_seconds
                if request_delta > 0:
                    rps = request_delta // interval_s
            elif values.requests_total > 0:
                # Requests arrived before the first snapshot; one-off baseline estimate.
                rps = values.requests_total // interval_s

            snapshot = Snapshot(
                born=now,
                cumulative_time_seconds=values.time_total_seconds,
                cumulative_errors=values.errors_total,
                cumulative_requests=values.requests_total,
                request_delta=request_delta,
                time_delta=time_delta,
                requests_per_second=rps,
            )
            buffer.append(snapshot)

        logger.debug(
            "history.sample",
            requests_total=snapshot.cumulative_requests,
            request_delta=request_delta,
            rps=rps,
            entries=len(self._buffer),
        )
        return snapshot

    def start(self) -> None:
        with self._state_lock:
            if self._state is SamplerState.ACTIVE:
                return
            if self._state is SamplerState.STOPPED:
                raise SamplerStateError("history sampler was stopped and cannot be restarted")

            t = threading.Thread(target=self._run, name="httpstat-history", daemon=True)
            self._thread = t
            self._state = SamplerState.ACTIVE
            t.start()

        logger.info(
            "history.sampler_started",
            sample_interval_s=self.options.sample_interval.total_seconds(),
            retention_window_s=self.options.retention_window.total_seconds(),
        )

    def stop(self) -> None:
        """Cancel future ticks. Safe to call repeatedly; entries already collected stay readable.

        A tick already in flight when this returns can no longer change the
        buffer. Call ``join()`` to also wait for the thread to exit.
        """

        with self._state_lock:
            if self._state is SamplerState.STOPPED:
                return
            self._state = SamplerState.STOPPED
            with self._buffer.writing():
                self._cancel.set()

        logger.info("history.sampler_stopped", entries=len(self._buffer))

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the sampling thread to exit. Returns False if it is still running."""

        t = self._thread
        if t is None:
            return True
        t.join(timeout)
        return not t.is_alive()

    def _run(self) -> None:
        interval = self.options.sample_interval.total_seconds()
        deadline = time.monotonic() + interval

        # Event.wait returns True once cancelled, so a pending cancel always
        # wins over a due tick and no final tick runs.
        while not self._cancel.wait(max(0.0, deadline - time.monotonic())):
            try:
                self.sample()
            except Exception:
                logger.exception("history.sample_failed")

            deadline += interval
            now = time.monotonic()
            if deadline <= now:
                missed = int((now - deadline) // interval) + 1
                logger.warning("history.ticks_skipped", missed=missed)
                deadline += missed * interval
