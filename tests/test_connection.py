"""Tests for DaemonConnection."""

from __future__ import annotations

import asyncio
import errno
import json
import shutil
import sys
import tempfile
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from playwright_repl.config import ReplConfig
from playwright_repl.errors import (
    ConnectionClosed,
    DaemonConnectionError,
    RemoteError,
    TransportError,
)
from playwright_repl.transport.connection import DaemonConnection, _ChannelProtocol, is_broken_pipe

Reply = Callable[[dict[str, Any]], Awaitable[bytes | None]]


def encode(message: dict[str, Any]) -> bytes:
    return json.dumps(message).encode() + b"\n"


class FakeDaemon:
    """Unix socket server speaking the daemon's line protocol."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.requests: list[dict[str, Any]] = []
        self.reply: Reply = self.echo
        self.server: asyncio.AbstractServer | None = None
        self.writers: list[asyncio.StreamWriter] = []

    @staticmethod
    async def echo(request: dict[str, Any]) -> bytes | None:
        command = request["params"]["args"]["_"][0] if request["method"] == "run" else request["method"]
        return encode({
            "id": request["id"],
            "result": {"text": f"### Result\nok {command}"},
            "version": request["version"],
        })

    async def start(self) -> None:
        self.server = await asyncio.start_unix_server(self._serve, path=self.path)

    async def _serve(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.writers.append(writer)
        try:
            while line := await reader.readline():
                request = json.loads(line)
                self.requests.append(request)
                data = await self.reply(request)
                if data:
                    writer.write(data)
                    await writer.drain()
        except ConnectionError:
            pass
        finally:
            writer.close()

    def drop_clients(self) -> None:
        for writer in self.writers:
            writer.close()
        self.writers.clear()

    async def stop(self) -> None:
        self.drop_clients()
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()


@pytest.fixture
def socket_dir() -> Iterator[Path]:
    """Short directory for socket files (Unix socket paths are length-limited)."""
    path = Path(tempfile.mkdtemp(prefix="pwr"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def daemon_config(socket_dir: Path) -> ReplConfig:
    return ReplConfig(socket_path=str(socket_dir / "d.sock"), cwd="/work", version="9.9.9")


@pytest.fixture
async def daemon(daemon_config: ReplConfig) -> AsyncIterator[FakeDaemon]:
    server = FakeDaemon(daemon_config.socket_path)
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
async def conn(daemon: FakeDaemon, daemon_config: ReplConfig) -> AsyncIterator[DaemonConnection]:
    connection = DaemonConnection(daemon_config)
    await connection.connect()
    yield connection
    connection.close()


unix_only = pytest.mark.skipif(sys.platform == "win32", reason="Unix domain sockets")


@unix_only
class TestSocketRoundTrip:
    """Tests against a real Unix socket server."""

    @pytest.mark.asyncio
    async def test_run_returns_result(self, conn: DaemonConnection, daemon: FakeDaemon) -> None:
        """run() sends the args and resolves with the daemon's result."""
        result = await conn.run({"_": ["snapshot"]})
        assert result == {"text": "### Result\nok snapshot"}
        assert daemon.requests[0]["method"] == "run"
        assert daemon.requests[0]["params"] == {"args": {"_": ["snapshot"]}, "cwd": "/work"}
        assert daemon.requests[0]["version"] == "9.9.9"

    @pytest.mark.asyncio
    async def test_ids_increase(self, conn: DaemonConnection, daemon: FakeDaemon) -> None:
        """Each request gets the next id, starting at 1."""
        for _ in range(3):
            await conn.run({"_": ["snapshot"]})
        assert [r["id"] for r in daemon.requests] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_send_other_method(self, conn: DaemonConnection, daemon: FakeDaemon) -> None:
        """send() uses the given method and defaults params to an empty object."""
        await conn.send("stop")
        assert daemon.requests[0]["method"] == "stop"
        assert daemon.requests[0]["params"] == {}

    @pytest.mark.asyncio
    async def test_remote_error(self, conn: DaemonConnection, daemon: FakeDaemon) -> None:
        """An error response raises RemoteError with the daemon's message."""
        async def fail(request: dict[str, Any]) -> bytes:
            return encode({"id": request["id"], "error": "Ref e99 not found"})

        daemon.reply = fail
        with pytest.raises(RemoteError, match="Ref e99 not found"):
            await conn.run({"_": ["click", "e99"]})
        assert conn.pending_count == 0
        assert conn.connected

    @pytest.mark.asyncio
    async def test_out_of_order_and_chunked_responses(
        self, conn: DaemonConnection, daemon: FakeDaemon
    ) -> None:
        """Responses are matched by id, whatever order and chunking they arrive in."""
        held: list[dict[str, Any]] = []

        async def reply_later(request: dict[str, Any]) -> bytes | None:
            held.append(request)
            if len(held) < 2:
                return None
            first, second = held
            data = (
                encode({"id": second["id"], "result": "second"})
                + b"garbage that is not json\n"
                + encode({"id": 999, "result": "unknown id"})
                + encode({"id": first["id"], "result": "first"})
            )
            writer = daemon.writers[0]
            for i in range(0, len(data), 7):
                writer.write(data[i:i + 7])
                await writer.drain()
                await asyncio.sleep(0)
            return None

        daemon.reply = reply_later
        one = asyncio.create_task(conn.send("run", {"n": 1}))
        await asyncio.sleep(0.05)
        two = asyncio.create_task(conn.send("run", {"n": 2}))
        assert await asyncio.wait_for(one, 5) == "first"
        assert await asyncio.wait_for(two, 5) == "second"
        assert conn.pending_count == 0

    @pytest.mark.asyncio
    async def test_peer_close_fails_pending(self, conn: DaemonConnection, daemon: FakeDaemon) -> None:
        """When the daemon hangs up, the outstanding request fails with ConnectionClosed."""
        async def hang_up(request: dict[str, Any]) -> None:
            daemon.drop_clients()
            return None

        daemon.reply = hang_up
        with pytest.raises(ConnectionClosed):
            await asyncio.wait_for(conn.run({"_": ["snapshot"]}), 5)
        assert not conn.connected
        assert conn.pending_count == 0

    @pytest.mark.asyncio
    async def test_close_fails_pending(self, conn: DaemonConnection, daemon: FakeDaemon) -> None:
        """close() fails every outstanding request once and can be called again."""
        async def never(request: dict[str, Any]) -> None:
            return None

        daemon.reply = never
        tasks = [
            asyncio.create_task(conn.run({"_": ["snapshot"]})),
            asyncio.create_task(conn.run({"_": ["reload"]})),
        ]
        await asyncio.sleep(0.05)
        assert conn.pending_count == 2

        conn.close()
        conn.close()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, ConnectionClosed) for r in results)
        assert [str(r) for r in results] == ["Connection closed", "Connection closed"]
        assert conn.pending_count == 0

    @pytest.mark.asyncio
    async def test_reconnect_after_close(self, conn: DaemonConnection, daemon: FakeDaemon) -> None:
        """A closed connection can connect again; ids keep increasing."""
        await conn.run({"_": ["snapshot"]})
        conn.close()
        assert not conn.connected

        await conn.connect()
        assert conn.connected
        await conn.run({"_": ["snapshot"]})
        assert [r["id"] for r in daemon.requests] == [1, 2]

    @pytest.mark.asyncio
    async def test_context_manager(self, daemon: FakeDaemon, daemon_config: ReplConfig) -> None:
        """async with connects and closes."""
        async with DaemonConnection(daemon_config) as connection:
            assert connection.connected
        assert not connection.connected

    @pytest.mark.asyncio
    async def test_connect_failure(self, daemon_config: ReplConfig) -> None:
        """Connecting where nothing listens raises DaemonConnectionError."""
        connection = DaemonConnection(daemon_config)
        with pytest.raises(DaemonConnectionError, match="Cannot connect to daemon at"):
            await connection.connect()
        assert not connection.connected


class TestWithoutSocket:
    """Tests driving DaemonConnection through a mock transport."""

    def make_connection(self, on_error: Any = None) -> tuple[DaemonConnection, MagicMock, _ChannelProtocol]:
        connection = DaemonConnection(ReplConfig(socket_path="/nowhere", version="1"), on_error=on_error)
        transport = MagicMock()
        transport.is_closing.return_value = False
        protocol = _ChannelProtocol(connection)
        connection._transport = transport
        connection._protocol = protocol
        return connection, transport, protocol

    @pytest.mark.asyncio
    async def test_send_when_not_connected(self) -> None:
        """send() before connect() raises TransportError without writing."""
        connection = DaemonConnection(ReplConfig(socket_path="/nowhere"))
        with pytest.raises(TransportError, match="Not connected"):
            await connection.run({"_": ["snapshot"]})
        assert connection.pending_count == 0

    @pytest.mark.asyncio
    async def test_pending_registered_before_write(self) -> None:
        """A response delivered during write() still completes the request."""
        connection, transport, protocol = self.make_connection()

        def write(data: bytes) -> None:
            request = json.loads(data)
            assert connection.pending_count == 1
            protocol.data_received(encode({"id": request["id"], "result": "fast"}))

        transport.write.side_effect = write
        assert await connection.send("run", {}) == "fast"
        assert connection.pending_count == 0

    @pytest.mark.asyncio
    async def test_write_failure(self) -> None:
        """A failing write raises TransportError and leaves nothing pending."""
        connection, transport, _ = self.make_connection()
        transport.write.side_effect = OSError("socket gone")
        with pytest.raises(TransportError, match="Write failed"):
            await connection.send("run", {})
        assert connection.pending_count == 0

    @pytest.mark.asyncio
    async def test_unserializable_params(self) -> None:
        """Params that cannot be encoded raise TransportError before writing."""
        connection, transport, _ = self.make_connection()
        with pytest.raises(TransportError, match="Cannot serialize"):
            await connection.send("run", {"bad": object()})
        transport.write.assert_not_called()
        assert connection.pending_count == 0

    @pytest.mark.asyncio
    async def test_stale_protocol_ignored(self) -> None:
        """Data from a previous connection's protocol is ignored."""
        connection, transport, protocol = self.make_connection()
        stale = _ChannelProtocol(connection)
        task = asyncio.create_task(connection.send("run", {}))
        await asyncio.sleep(0)

        stale.data_received(encode({"id": 1, "result": "stale"}))
        assert not task.done()

        protocol.data_received(encode({"id": 1, "result": "fresh"}))
        assert await task == "fresh"

    @pytest.mark.asyncio
    async def test_connection_lost_reports_error(self) -> None:
        """A socket error goes to on_error and fails pending requests."""
        errors: list[BaseException] = []
        connection, _, protocol = self.make_connection(on_error=errors.append)
        task = asyncio.create_task(connection.send("run", {}))
        await asyncio.sleep(0)

        protocol.connection_lost(ConnectionResetError("reset by peer"))
        with pytest.raises(ConnectionClosed):
            await task
        assert len(errors) == 1
        assert not connection.connected

    def test_broken_pipe_not_reported(self) -> None:
        """EPIPE is treated as an ordinary shutdown race."""
        errors: list[BaseException] = []
        connection, _, protocol = self.make_connection(on_error=errors.append)
        protocol.connection_lost(OSError(errno.EPIPE, "Broken pipe"))
        assert errors == []
        assert not connection.connected

    def test_is_broken_pipe(self) -> None:
        """is_broken_pipe recognises BrokenPipeError and EPIPE only."""
        assert is_broken_pipe(BrokenPipeError())
        assert is_broken_pipe(OSError(errno.EPIPE, "pipe"))
        assert not is_broken_pipe(ConnectionResetError())

    def test_partial_record_dropped_on_disconnect(self) -> None:
        """Bytes of an unterminated record do not leak into the next connection."""
        connection, _, protocol = self.make_connection()
        protocol.data_received(b'{"id": 1, "resu')
        assert connection._framer.buffered > 0

        protocol.connection_lost(None)
        assert connection._framer.buffered == 0
