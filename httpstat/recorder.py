"""Per-request response recording.

A ResponseRecorder sits between a handler and the real response sink and
remembers the status code and body size the handler produced, without
changing what the sink sees. It is also a valid ASGI ``send`` callable, so
an ASGI app can be handed the recorder in place of the server's ``send``.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Sequence
from threading import Lock
from typing import Any, MutableMapping, Protocol, runtime_checkable


Message = MutableMapping[str, Any]
Headers = Sequence[tuple[bytes, bytes]]


@runtime_checkable
class ResponseSink(Protocol):
    async def write_header(self, status: int, headers: Headers = (), *, trailers: bool = False) -> None: ...

    async def write(self, data: bytes, *, more: bool = True) -> int: ...


@runtime_checkable
class Flusher(Protocol):
    async def flush(self) -> None: ...


@runtime_checkable
class Hijacker(Protocol):
    async def hijack(self) -> Any: ...


@runtime_checkable
class CloseNotifier(Protocol):
    def close_notify(self) -> asyncio.Event: ...


@runtime_checkable
class MessageForwarder(Protocol):
    async def forward(self, message: Message) -> None: ...


class Capability(str, enum.Enum):
    FLUSH = "flush"
    HIJACK = "hijack"
    CLOSE_NOTIFY = "close_notify"
    FORWARD = "forward"


_CAPABILITY_TYPES: dict[Capability, type] = {
    Capability.FLUSH: Flusher,
    Capability.HIJACK: Hijacker,
    Capability.CLOSE_NOTIFY: CloseNotifier,
    Capability.FORWARD: MessageForwarder,
}


class UnsupportedCapability(RuntimeError):
    """The wrapped sink lacks a capability the handler tried to use.

    Callers must only use capabilities the recorder advertises, so this is
    never caught and retried inside httpstat.
    """

    def __init__(self, capability: Capability, sink: object) -> None:
        self.capability = capability
        self.sink_type = type(sink).__name__
        super().__init__(f"wrapped response sink {self.sink_type} does not support the {capability.value} capability")


class ResponseRecorder:
    """Wraps one response sink for the lifetime of one request.

    A sink implements a capability by satisfying its protocol. A sink may
    also expose a ``capabilities`` set, in which case only the protocols it
    lists there count. That is how a recorder wrapping another recorder
    reports what the innermost sink can really do.
    """

    def __init__(self, sink: ResponseSink) -> None:
        self._sink = sink
        # Handlers may write from several workers at once.
        self._lock = Lock()
        self._status: int = 0
        self._bytes_written: int = 0
        declared = getattr(sink, "capabilities", None)
        self._capabilities: dict[Capability, Any] = {
            capability: sink
            for capability, proto in _CAPABILITY_TYPES.items()
            if isinstance(sink, proto) and (declared is None or capability in declared)
        }

    @property
    def sink(self) -> ResponseSink:
        return self._sink

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset(self._capabilities)

    def capability(self, capability: Capability) -> Any | None:
        """Return the sink's implementation of ``capability``, or None when it has none."""

        return self._capabilities.get(capability)

    def _require(self, capability: Capability) -> Any:
        impl = self._capabilities.get(capability)
        if impl is None:
            raise UnsupportedCapability(capability, self._sink)
        return impl

    @property
    def status(self) -> int:
        """Recorded status code, or 0 if no header has been written yet."""
        with self._lock:
            return self._status

    @property
    def written(self) -> bool:
        with self._lock:
            return self._status != 0

    @property
    def bytes_written(self) -> int:
        with self._lock:
            return self._bytes_written

    async def write_header(self, status: int, headers: Headers = (), *, trailers: bool = False) -> None:
        # Every call overwrites the recorded status even though the transport
        # only honors the first commit.
        with self._lock:
            self._status = int(status)

        await self._sink.write_header(status, headers, trailers=trailers)

    async def write(self, data: bytes, *, more: bool = True) -> int:
        if not self.written:
            await self.write_header(200)

        n = await self._sink.write(data, more=more)
        with self._lock:
            self._bytes_written += n
        return n

    async def flush(self) -> None:
        await self._require(Capability.FLUSH).flush()

    async def hijack(self) -> Any:
        return await self._require(Capability.HIJACK).hijack()

    def close_notify(self) -> asyncio.Event:
        return self._require(Capability.CLOSE_NOTIFY).close_notify()

    async def forward(self, message: Message) -> None:
        await self._require(Capability.FORWARD).forward(message)

    async def __call__(self, message: Message) -> None:
        kind = message.get("type")
        if kind == "http.response.start":
            await self.write_header(
                int(message["status"]),
                message.get("headers", ()),
                trailers=bool(message.get("trailers", False)),
            )
        elif kind == "http.response.body":
            await self.write(message.get("body", b""), more=bool(message.get("more_body", False)))
        else:
            await self.forward(message)
