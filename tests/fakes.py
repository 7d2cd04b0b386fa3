from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timedelta, timezone


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class MemorySink:
    """Sink without optional capabilities; keeps everything it was sent."""

    def __init__(self) -> None:
        self.headers_sent: list[int] = []
        self.body = bytearray()
        self.closed = False

    async def write_header(self, status: int, headers=(), *, trailers: bool = False) -> None:
        self.headers_sent.append(status)

    async def write(self, data: bytes, *, more: bool = True) -> int:
        self.body.extend(data)
        if not more:
            self.closed = True
        return len(data)


class StreamingSink(MemorySink):
    def __init__(self) -> None:
        super().__init__()
        self.flushes = 0
        self.hijacked = False
        self.forwarded: list[dict] = []
        self.disconnected = asyncio.Event()

    async def flush(self) -> None:
        self.flushes += 1

    async def hijack(self) -> str:
        self.hijacked = True
        return "raw-connection"

    def close_notify(self) -> asyncio.Event:
        return self.disconnected

    async def forward(self, message: dict) -> None:
        self.forwarded.append(message)


class SteppingClock:
    """Wall clock for the real sampling loop.

    Every call moves one second forward. ``block_on`` names a call number
    that parks until ``release()``. ``fail_on`` names one that raises.
    """

    def __init__(self, *, block_on: int | None = None, fail_on: int | None = None) -> None:
        self.start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.calls = 0
        self.block_on = block_on
        self.fail_on = fail_on
        self.entered = threading.Event()
        self._gate = threading.Event()

    def __call__(self) -> datetime:
        self.calls += 1
        n = self.calls
        if n == self.fail_on:
            raise RuntimeError("clock unavailable")
        if n == self.block_on:
            self.entered.set()
            self._gate.wait(5.0)
        return self.start + timedelta(seconds=n)

    def release(self) -> None:
        self._gate.set()


class RecordingLogger:
    """Stands in for a module's structlog logger and keeps event names with their fields."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def _record(self, event: str, **kw) -> None:
        self.events.append((event, kw))

    debug = info = warning = error = exception = _record

    def names(self) -> list[str]:
        return [event for event, _ in self.events]
