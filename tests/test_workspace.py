"""Tests for workspace detection, socket addressing and daemon helpers."""

from __future__ import annotations

import hashlib
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from playwright_repl.config import ReplConfig
from playwright_repl.workspace import (
    SOCKETS_DIR_ENV,
    daemon_launch_args,
    daemon_profiles_dir,
    find_daemon_pids,
    find_workspace_dir,
    is_daemon_running,
    kill_daemons,
    socket_path,
    sockets_base_dir,
    start_daemon,
    workspace_hash,
)


class TestWorkspace:
    """Tests for workspace detection and hashing."""

    def test_finds_marker_in_ancestor(self, tmp_path: Path) -> None:
        """The nearest directory holding .playwright is the workspace."""
        (tmp_path / ".playwright").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_workspace_dir(nested) == tmp_path

    def test_no_marker(self, tmp_path: Path) -> None:
        """Without a marker within the depth limit there is no workspace."""
        nested = tmp_path / "a"
        nested.mkdir()
        assert find_workspace_dir(nested, max_depth=2) is None

    def test_hash_of_workspace(self, tmp_path: Path) -> None:
        """Inside a workspace the hash is of the workspace path."""
        (tmp_path / ".playwright").mkdir()
        expected = hashlib.sha1(str(tmp_path).encode("utf-8")).hexdigest()[:16]
        assert workspace_hash(tmp_path) == expected

    def test_hash_falls_back_to_package_location(self, tmp_path: Path) -> None:
        """Outside a workspace the package location is hashed."""
        with patch("playwright_repl.workspace.find_workspace_dir", return_value=None):
            value = workspace_hash(tmp_path, package_location="/opt/pkg")
        assert value == hashlib.sha1(b"/opt/pkg").hexdigest()[:16]
        assert len(value) == 16


class TestAddresses:
    """Tests for socket and profile paths."""

    def test_posix_socket(self) -> None:
        """POSIX sockets live under <base>/<hash>/<session>.sock."""
        env = {SOCKETS_DIR_ENV: "/run/pw"}
        assert socket_path("default", "abc123", windows=False, env=env) == str(
            Path("/run/pw") / "abc123" / "default.sock"
        )

    def test_windows_pipe(self) -> None:
        """Windows uses a named pipe keyed by hash and session."""
        assert socket_path("work", "abc123", windows=True) == "\\\\.\\pipe\\abc123-work.sock"

    def test_sockets_base_dir_default(self) -> None:
        """Without the override, sockets live in the temp directory."""
        assert sockets_base_dir({}).name == "playwright-cli"

    @pytest.mark.parametrize(
        ("system", "parts"),
        [
            ("Linux", (".cache", "ms-playwright", "daemon")),
            ("Darwin", ("Library", "Caches", "ms-playwright", "daemon")),
        ],
    )
    def test_profiles_dir(self, system: str, parts: tuple[str, ...]) -> None:
        """The daemon cache directory follows each platform's convention."""
        home = Path("/home/u")
        assert daemon_profiles_dir("h", system=system, env={}, home=home) == home.joinpath(*parts, "h")

    def test_profiles_dir_windows(self) -> None:
        """On Windows LOCALAPPDATA is used when set."""
        path = daemon_profiles_dir("h", system="Windows", env={"LOCALAPPDATA": "C:/Local"}, home=Path("/h"))
        assert path == Path("C:/Local") / "ms-playwright" / "daemon" / "h"


class TestDaemonHelpers:
    """Tests for launching and finding daemons."""

    def test_launch_args_default_session(self) -> None:
        """The default session adds no -s flag."""
        assert daemon_launch_args(ReplConfig()) == ["playwright-cli", "open"]

    def test_launch_args_all_options(self) -> None:
        """Configured options are forwarded to the launcher."""
        config = ReplConfig(
            session_name="work",
            daemon_command="npx playwright-cli",
            headed=True,
            browser="firefox",
            persistent=True,
            profile="/p",
            daemon_config="d.json",
        )
        assert daemon_launch_args(config) == [
            "npx", "playwright-cli", "-s=work", "open", "--headed",
            "--browser", "firefox", "--persistent", "--profile", "/p", "--config", "d.json",
        ]

    def test_find_daemon_pids(self) -> None:
        """Only lines with both daemon markers count."""
        listing = (
            "USER PID %CPU\n"
            "me 101 0.0 node cli.js run-mcp-server --daemon-session=a\n"
            "me 102 0.0 node cli.js run-mcp-server\n"
            "me 103 0.0 node other --daemon-session=b\n"
            "me 104 0.0 node cli.js run-mcp-server --daemon-session=c\n"
        )
        assert find_daemon_pids(listing) == [101, 104]

    @pytest.mark.asyncio
    async def test_kill_daemons_counts_successes(self) -> None:
        """Processes that cannot be signalled are not counted."""
        def fake_kill(pid: int, sig: int) -> None:
            if pid == 2:
                raise ProcessLookupError(pid)

        with (
            patch("playwright_repl.workspace._list_daemon_pids", AsyncMock(return_value=[1, 2, 3])),
            patch("playwright_repl.workspace.os.kill", side_effect=fake_kill),
        ):
            assert await kill_daemons() == 2

    @pytest.mark.asyncio
    async def test_is_daemon_running_false_without_socket(self, tmp_path: Path) -> None:
        """Nothing listening means not running."""
        with patch("playwright_repl.workspace.open_stream", AsyncMock(side_effect=FileNotFoundError)):
            assert not await is_daemon_running(str(tmp_path / "none.sock"))

    @pytest.mark.asyncio
    async def test_start_daemon_reports_launch_failure(self) -> None:
        """A launcher that cannot be executed returns False."""
        config = ReplConfig(daemon_command="definitely-not-a-real-binary-xyz", silent=True)
        with patch("playwright_repl.workspace.console"):
            assert await start_daemon(config) is False
