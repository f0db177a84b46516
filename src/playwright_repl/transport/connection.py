"""Persistent socket connection to the Playwright CLI daemon."""

from __future__ import annotations

import asyncio
import errno
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from playwright_repl.errors import (
    ConnectionClosed,
    DaemonConnectionError,
    RemoteError,
    TransportError,
)
from playwright_repl.logging import TRACE, get_logger
from playwright_repl.transport.framing import LineFramer
from playwright_repl.transport.messages import Request, Response
from playwright_repl.workspace import open_stream

if TYPE_CHECKING:
    from playwright_repl.config import ReplConfig

log = get_logger("transport")

ErrorHandler = Callable[[BaseException], None]


def is_broken_pipe(exc: BaseException) -> bool:
    """Broken pipes happen during ordinary shutdown races and are not reported."""
    return isinstance(exc, BrokenPipeError) or getattr(exc, "errno", None) == errno.EPIPE


class _ChannelProtocol(asyncio.Protocol):
    """Feeds socket events back into the owning DaemonConnection."""

    def __init__(self, channel: DaemonConnection) -> None:
        self._channel = channel

    def data_received(self, data: bytes) -> None:
        self._channel._on_data(self, data)

    def connection_lost(self, exc: Exception | None) -> None:
        self._channel._on_connection_lost(self, exc)


class DaemonConnection:
    """Request/response channel over one long-lived Unix socket or named pipe.

    Every request gets a fresh id (1, 2, 3, ... never reused). The pending
    future for that id is registered before the bytes are written, and
    removed as soon as its response arrives or the connection goes away.

    Socket errors after connect() never raise; they go to ``on_error`` (or
    the log when no handler is set). Broken pipes are ignored entirely.

    Usage:
        conn = DaemonConnection(config, on_error=report)
        await conn.connect()
        result = await conn.run({"_": ["snapshot"]})
        conn.close()
    """

    def __init__(self, config: ReplConfig, on_error: ErrorHandler | None = None) -> None:
        self.config = config
        self.address = config.socket_path
        self.version = config.version
        self.on_error = on_error

        self._transport: asyncio.WriteTransport | None = None
        self._protocol: _ChannelProtocol | None = None
        self._framer = LineFramer()
        self._next_id = 1
        self._pending: dict[int, asyncio.Future[Any]] = {}

    async def __aenter__(self) -> DaemonConnection:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def pending_count(self) -> int:
        """Number of requests still waiting for a response."""
        return len(self._pending)

    async def connect(self) -> None:
        """Open the connection, dropping any previous one first.

        Raises:
            DaemonConnectionError: If nothing accepts connections at the address.
        """
        if self._transport is not None:
            self.close()

        protocol = _ChannelProtocol(self)
        try:
            transport, _ = await open_stream(self.address, lambda: protocol)
        except OSError as e:
            raise DaemonConnectionError(self.address, e) from e

        self._transport = transport  # type: ignore[assignment]
        self._protocol = protocol
        self._framer.reset()
        log.info("Connected to daemon at %s", self.address)

    async def send(self, method: str, params: Any = None) -> Any:
        """Send one request and wait for its response.

        Returns:
            The response's ``result`` value.

        Raises:
            TransportError: Not connected, unserializable params, or write failure.
            RemoteError: The daemon answered with an ``error``.
            ConnectionClosed: The connection closed before the response arrived.
        """
        if not self.connected or self._transport is None:
            raise TransportError("Not connected to daemon")

        request_id = self._next_id
        self._next_id += 1

        request = Request(
            id=request_id,
            method=method,
            params=params if params is not None else {},
            version=self.version,
        )
        try:
            data = request.encode()
        except (TypeError, ValueError) as e:
            raise TransportError(f"Cannot serialize request: {e}") from e

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            self._transport.write(data)
        except (OSError, RuntimeError) as e:
            self._pending.pop(request_id, None)
            raise TransportError(f"Write failed: {e}") from e

        log.log(TRACE, "-> %s", data[:500])
        try:
            return await future
        finally:
            self._pending.pop(request_id, None)

    async def run(self, args: dict[str, Any]) -> Any:
        """Send a ``run`` command, the standard way to execute CLI commands.

        Args:
            args: minimist-style arguments, e.g. ``{"_": ["click", "e5"]}``.
        """
        return await self.send("run", {"args": args, "cwd": self.config.cwd})

    def close(self) -> None:
        """Close the connection and fail every outstanding request.

        Safe to call any number of times; each pending request is failed once.
        """
        transport = self._transport
        self._transport = None
        self._protocol = None
        self._discard_partial()
        if transport is not None:
            transport.close()
            log.info("Disconnected from daemon")
        self._fail_pending()

    def _discard_partial(self) -> None:
        if self._framer.buffered:
            log.log(TRACE, "Dropped %d bytes of unterminated record", self._framer.buffered)
            self._framer.reset()

    def _fail_pending(self) -> None:
        if not self._pending:
            return
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(ConnectionClosed())

    def _on_data(self, protocol: _ChannelProtocol, data: bytes) -> None:
        if protocol is not self._protocol:
            return
        for record in self._framer.feed(data):
            self._dispatch(record)

    def _dispatch(self, record: bytes) -> None:
        """Complete the pending request a response record belongs to.

        Malformed records and responses for unknown ids are dropped.
        """
        try:
            response = Response.model_validate_json(record)
        except ValidationError:
            log.log(TRACE, "Dropped malformed record: %r", record[:200])
            return

        future = self._pending.pop(response.id, None)
        if future is None:
            log.log(TRACE, "Dropped response for unknown id %d", response.id)
            return
        if future.done():
            return

        if response.failed:
            future.set_exception(RemoteError(str(response.error)))
        else:
            future.set_result(response.result)

    def _on_connection_lost(self, protocol: _ChannelProtocol, exc: BaseException | None) -> None:
        if exc is not None:
            self._handle_error(exc)
        if protocol is not self._protocol:
            return
        log.info("Connection to daemon lost")
        self._transport = None
        self._protocol = None
        self._discard_partial()
        self._fail_pending()

    def _handle_error(self, exc: BaseException) -> None:
        if is_broken_pipe(exc):
            return
        if self.on_error is not None:
            self.on_error(exc)
        else:
            log.warning("Socket error: %s", exc)
