"""Workspace detection, socket addressing and daemon lifecycle.

The daemon listens on a socket whose path is derived from a hash of the
workspace directory (the nearest ancestor holding a ``.playwright`` folder)
or, outside any workspace, of this package's location:

    hash = sha1(workspace_dir or package_location).hexdigest()[:16]

    POSIX:   <sockets dir>/<hash>/<session>.sock
    Windows: \\\\.\\pipe\\<hash>-<session>.sock

Everything here is a pure function of its arguments; the values are computed
once by the config loader and carried in ``ReplConfig``.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
import platform
import shlex
import signal
import tempfile
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from playwright_repl.logging import get_logger

if TYPE_CHECKING:
    from playwright_repl.config import ReplConfig

log = get_logger("workspace")
console = Console()

_WINDOWS = platform.system() == "Windows"

WORKSPACE_MARKER = ".playwright"
SOCKETS_DIR_ENV = "PLAYWRIGHT_DAEMON_SOCKETS_DIR"
DAEMON_MARKERS = ("run-mcp-server", "--daemon-session")

# Must match the hash input the daemon launcher uses
PACKAGE_LOCATION = str(Path(__file__).resolve().parent)


def find_workspace_dir(start_dir: Path, max_depth: int = 10) -> Path | None:
    """Walk up from start_dir looking for a directory containing ``.playwright``."""
    directory = start_dir
    for _ in range(max_depth):
        if (directory / WORKSPACE_MARKER).exists():
            return directory
        parent = directory.parent
        if parent == directory:
            break
        directory = parent
    return None


def workspace_hash(start_dir: Path, package_location: str = PACKAGE_LOCATION) -> str:
    """Return the 16-hex-digit hash identifying this workspace's daemons."""
    workspace = find_workspace_dir(start_dir)
    hash_input = str(workspace) if workspace else package_location
    return hashlib.sha1(hash_input.encode("utf-8")).hexdigest()[:16]


def sockets_base_dir(env: Mapping[str, str] | None = None) -> Path:
    """Directory holding per-workspace socket folders (POSIX only)."""
    env = os.environ if env is None else env
    override = env.get(SOCKETS_DIR_ENV)
    if override:
        return Path(override)
    return Path(tempfile.gettempdir()) / "playwright-cli"


def socket_path(
    session_name: str,
    hash_: str,
    *,
    windows: bool = _WINDOWS,
    env: Mapping[str, str] | None = None,
) -> str:
    """Address of the daemon socket for a session."""
    if windows:
        return f"\\\\.\\pipe\\{hash_}-{session_name}.sock"
    return str(sockets_base_dir(env) / hash_ / f"{session_name}.sock")


def daemon_profiles_dir(
    hash_: str,
    *,
    system: str | None = None,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> Path:
    """Per-workspace daemon cache directory (REPL history lives here)."""
    system = system or platform.system()
    env = os.environ if env is None else env
    home = home or Path.home()

    if system == "Darwin":
        base = home / "Library" / "Caches" / "ms-playwright" / "daemon"
    elif system == "Windows":
        local = env.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
        base = Path(local) / "ms-playwright" / "daemon"
    else:
        base = home / ".cache" / "ms-playwright" / "daemon"
    return base / hash_


async def open_stream(
    address: str,
    protocol_factory: Callable[[], asyncio.Protocol],
) -> tuple[asyncio.BaseTransport, asyncio.Protocol]:
    """Open a stream connection to a Unix socket path or a Windows named pipe."""
    loop = asyncio.get_running_loop()
    if _WINDOWS:
        return await loop.create_pipe_connection(protocol_factory, address)  # type: ignore[attr-defined]
    return await loop.create_unix_connection(protocol_factory, address)  # type: ignore[arg-type]


async def is_daemon_running(address: str) -> bool:
    """Probe the socket: True when something accepts a connection."""
    try:
        transport, _ = await open_stream(address, asyncio.Protocol)
    except OSError:
        return False
    transport.close()
    return True


def daemon_launch_args(config: ReplConfig) -> list[str]:
    """Build the launcher command line for ``open`` in this session."""
    args = shlex.split(config.daemon_command)
    if config.session_name != "default":
        args.append(f"-s={config.session_name}")
    args.append("open")
    if config.headed:
        args.append("--headed")
    if config.browser:
        args.extend(["--browser", config.browser])
    if config.persistent:
        args.append("--persistent")
    if config.profile:
        args.extend(["--profile", config.profile])
    if config.daemon_config:
        args.extend(["--config", config.daemon_config])
    return args


async def start_daemon(config: ReplConfig, timeout: float = 30.0) -> bool:
    """Start the daemon through the configured launcher.

    Launcher output is echoed; failures are reported, never raised.

    Returns:
        True if the launcher exited with status 0.
    """
    args = daemon_launch_args(config)
    if not config.silent:
        console.print("[bold]Starting daemon...[/bold]")
    log.info("Launching daemon: %s", shlex.join(args))

    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        console.print(f"[red]Error starting daemon:[/red] {e}")
        return False

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        console.print(f"[red]Daemon launcher timed out after {timeout:.0f}s[/red]")
        return False

    out = stdout.decode("utf-8", errors="replace").strip()
    err = stderr.decode("utf-8", errors="replace").strip()
    if out:
        console.print(out, markup=False, highlight=False)
    if err:
        console.print(err, markup=False, highlight=False, style="red")
    return process.returncode == 0


def find_daemon_pids(listing: str) -> list[int]:
    """Extract daemon pids from ``ps aux`` output."""
    pids = []
    for line in listing.splitlines():
        if all(marker in line for marker in DAEMON_MARKERS):
            fields = line.split()
            if len(fields) > 1 and fields[1].isdigit():
                pids.append(int(fields[1]))
    return pids


async def _list_daemon_pids() -> list[int]:
    if _WINDOWS:
        script = (
            "Get-CimInstance Win32_Process | Where-Object { "
            "$_.CommandLine -like '*run-mcp-server*' -and "
            "$_.CommandLine -like '*--daemon-session*' } | "
            "Select-Object -ExpandProperty ProcessId"
        )
        args = ["powershell", "-NoProfile", "-Command", script]
    else:
        args = ["ps", "aux"]

    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    stdout, _ = await process.communicate()
    output = stdout.decode("utf-8", errors="replace")

    if _WINDOWS:
        return [int(line.strip()) for line in output.splitlines() if line.strip().isdigit()]
    return find_daemon_pids(output)


async def kill_daemons() -> int:
    """Kill every local daemon process. Returns how many were signalled."""
    killed = 0
    for pid in await _list_daemon_pids():
        try:
            if _WINDOWS:
                os.kill(pid, signal.SIGTERM)
            else:
                os.kill(pid, signal.SIGKILL)  # type: ignore[attr-defined]
            killed += 1
        except OSError as e:
            log.debug("Could not kill daemon pid %d: %s", pid, e)
    return killed
