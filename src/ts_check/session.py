"""tsserver session - the server handle.

A session multiplexes any number of logical requests over one tsserver
process. The process is demand-driven: it is launched when the first
listener registers through `listen()` and stopped when the last listener
leaves. Messages sent while nobody listens are dropped, since no process
exists to receive them.

Usage:
    session = TsServerSession(config)

    async with session.listen() as messages:
        session.send(Request.open(session.next_seq(), "/abs/a.ts"))
        async for message in messages:
            ...
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from .config import ServerConfig
from .protocol.messages import Event, Request, Response, parse_message
from .transport import CloseCallback, MessageCallback, ProcessTransport, ServerProcessError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What a session needs from a transport."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    def write(self, message: BaseModel | dict[str, Any]) -> None: ...


TransportFactory = Callable[[ServerConfig, MessageCallback, CloseCallback], Transport]


class SequenceCounter:
    """Monotonic request sequence numbers, never reused."""

    def __init__(self, start: int = 0) -> None:
        self._next = start

    def next(self) -> int:
        seq = self._next
        self._next += 1
        return seq


@dataclass(frozen=True)
class _StreamEnd:
    """Terminal marker queued to listeners when the process goes away."""

    error: ServerProcessError | None = None


class Subscription:
    """One listener on the session's inbound message stream.

    Registration happens on `open()` (or entering the async context), so a
    caller can subscribe before sending and never miss the response.
    Each subscription sees every message that arrives while it is open,
    in arrival order; nothing is replayed.
    """

    def __init__(self, session: TsServerSession) -> None:
        self._session = session
        self._queue: asyncio.Queue[Request | Response | Event | _StreamEnd] = asyncio.Queue()
        self._opened = False
        self._ended = False

    async def open(self) -> Subscription:
        """Register with the session, starting the process if needed."""
        if self._opened:
            raise RuntimeError("Subscription already opened")
        self._opened = True
        try:
            await self._session._register(self)
        except BaseException:
            self._ended = True
            raise
        return self

    async def aclose(self) -> None:
        """Unregister. Stops the process if this was the last listener."""
        self._ended = True
        await self._session._unregister(self)

    async def __aenter__(self) -> Subscription:
        return await self.open()

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Request | Response | Event:
        if not self._opened:
            raise RuntimeError("Subscription is not open")
        if self._ended and self._queue.empty():
            raise StopAsyncIteration

        item = await self._queue.get()
        if isinstance(item, _StreamEnd):
            self._ended = True
            if item.error is not None:
                raise item.error
            raise StopAsyncIteration
        return item

    def _deliver(self, message: Request | Response | Event) -> None:
        self._queue.put_nowait(message)

    def _end(self, error: ServerProcessError | None) -> None:
        self._queue.put_nowait(_StreamEnd(error))


class TsServerSession:
    """Handle to a demand-driven tsserver process.

    Public operations are `send` and `listen`. Correlating responses with
    requests is left to callers (see `ts_check.request`).

    Thread-safety: not thread-safe. All calls must happen on one event loop;
    an asyncio.Lock serializes process start/stop between concurrent
    listeners.
    """

    def __init__(
        self,
        config: ServerConfig,
        transport_factory: TransportFactory = ProcessTransport,
    ) -> None:
        self.config = config
        self._transport_factory = transport_factory
        self._transport: Transport | None = None
        self._listeners: list[Subscription] = []
        self._lock = asyncio.Lock()
        self._seq = SequenceCounter()
        self._cleanup_tasks: set[asyncio.Task[None]] = set()

    @property
    def is_running(self) -> bool:
        return self._transport is not None

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def next_seq(self) -> int:
        """Issue a fresh request sequence number."""
        return self._seq.next()

    def listen(self) -> Subscription:
        """Get a new (not yet opened) listener on the inbound stream."""
        return Subscription(self)

    def send(self, message: Request) -> None:
        """Queue a message for tsserver. Dropped if nobody is listening."""
        if self._transport is None:
            logger.debug(f"No listeners, dropping {message.command} (seq={message.seq})")
            return
        logger.debug(f"Sending {message.command} (seq={message.seq})")
        self._transport.write(message)

    async def close(self) -> None:
        """End every listener's stream and stop the process."""
        async with self._lock:
            listeners, self._listeners = self._listeners, []
            transport, self._transport = self._transport, None
            for listener in listeners:
                listener._end(None)
            if transport is not None:
                await transport.stop()

    async def _register(self, listener: Subscription) -> None:
        async with self._lock:
            self._listeners.append(listener)
            if self._transport is not None:
                return

            transport: Transport | None = None

            def on_close(error: ServerProcessError | None) -> None:
                self._handle_close(transport, error)

            transport = self._transport_factory(self.config, self._dispatch, on_close)
            try:
                await transport.start()
            except BaseException:
                self._listeners.remove(listener)
                raise
            self._transport = transport

    async def _unregister(self, listener: Subscription) -> None:
        async with self._lock:
            if listener not in self._listeners:
                return
            self._listeners.remove(listener)
            if self._listeners or self._transport is None:
                return

            transport, self._transport = self._transport, None
            logger.debug("Last listener left, stopping tsserver")
            await transport.stop()

    def _dispatch(self, data: Any) -> None:
        """Fan one decoded message out to every listener."""
        try:
            message = parse_message(data)
        except ValidationError as e:
            if self.config.verbose:
                logger.warning(f"Ignoring unknown message from tsserver: {e}")
            else:
                logger.debug(f"Ignoring unknown message from tsserver: {e}")
            return

        for listener in list(self._listeners):
            listener._deliver(message)

    def _handle_close(self, transport: Transport | None, error: ServerProcessError | None) -> None:
        if transport is None or transport is not self._transport:
            return

        if error is not None:
            logger.error(f"tsserver failed: {error}")

        listeners, self._listeners = self._listeners, []
        self._transport = None
        for listener in listeners:
            listener._end(error)

        # Reap the exited process in the background
        task = asyncio.create_task(transport.stop())
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)
