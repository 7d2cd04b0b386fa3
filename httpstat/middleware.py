from __future__ import annotations

import asyncio
import uuid
from time import perf_counter
from typing import TYPE_CHECKING, Any, Callable, Iterable

import structlog

from httpstat.recorder import Capability, Headers, Message, ResponseRecorder, UnsupportedCapability

if TYPE_CHECKING:
    from httpstat.stats import HTTPStats


logger = structlog.get_logger("httpstat.middleware")


class ASGIResponseSink:
    """Response sink writing to an ASGI ``send`` callable.

    Supports flushing and disconnect notification. Forwarding is offered
    only when the server advertises extensions in ``scope["extensions"]``,
    and then only for those message types. A plain ASGI HTTP connection
    cannot be hijacked.
    """

    def __init__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        self._receive = receive
        self._send = send
        self._started = False
        self._finished = False
        self._disconnected = asyncio.Event()
        self._extensions = frozenset(scope.get("extensions") or ())

        supported = {Capability.FLUSH, Capability.CLOSE_NOTIFY}
        if self._extensions:
            supported.add(Capability.FORWARD)
        self._capabilities = frozenset(supported)

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._capabilities

    @property
    def started(self) -> bool:
        return self._started

    @property
    def finished(self) -> bool:
        return self._finished

    async def receive(self) -> Message:
        message = await self._receive()
        if message.get("type") == "http.disconnect":
            self._disconnected.set()
        return message

    async def write_header(self, status: int, headers: Headers = (), *, trailers: bool = False) -> None:
        if self._started:
            # The server has already sent the status line.
            logger.debug("response.header_already_sent", status=status)
            return

        self._started = True
        message: dict[str, Any] = {"type": "http.response.start", "status": int(status), "headers": list(headers)}
        if trailers:
            message["trailers"] = True
        await self._send(message)

    async def write(self, data: bytes, *, more: bool = True) -> int:
        if not self._started:
            await self.write_header(200)

        body = bytes(data)
        await self._send({"type": "http.response.body", "body": body, "more_body": more})
        if not more:
            self._finished = True
        return len(body)

    async def flush(self) -> None:
        # ASGI servers push every send to the socket; an empty chunk is a flush.
        if self._started and not self._finished:
            await self._send({"type": "http.response.body", "body": b"", "more_body": True})

    def close_notify(self) -> asyncio.Event:
        return self._disconnected

    async def forward(self, message: Message) -> None:
        if message.get("type") not in self._extensions:
            raise UnsupportedCapability(Capability.FORWARD, self)
        await self._send(message)

    async def finish(self) -> None:
        """Terminate a started response the handler left open."""

        if self._started and not self._finished:
            await self.write(b"", more=False)


class StatsMiddleware:
    """Adds request_id context, access logs, and request counters."""

    def __init__(self, app: Callable[..., Any], stats: HTTPStats, excluded_paths: Iterable[str] = ()) -> None:
        self.app = app
        self.stats = stats
        self._excluded_paths = set(excluded_paths)

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path")
        method = scope.get("method")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        sink = ASGIResponseSink(scope, receive, send)
        recorder = ResponseRecorder(sink)
        start = perf_counter()
        status_override: int | None = None

        try:
            await self.app(scope, sink.receive, recorder)
            await sink.finish()
        except Exception:
            # Nothing reached the client; whoever handles this upstream answers 500.
            if not recorder.written:
                status_override = 500
            raise
        finally:
            elapsed = perf_counter() - start

            if path not in self._excluded_paths:
                self.stats.update(recorder, elapsed, status=status_override)

            structlog.get_logger("access").info(
                "http_request",
                status_code=status_override or recorder.status,
                bytes_written=recorder.bytes_written,
                elapsed_ms=round(elapsed * 1000.0, 2),
            )

            structlog.contextvars.clear_contextvars()
