"""Configuration loading for playwright-repl.

Precedence, lowest to highest: built-in defaults, YAML config file, CLI
options. The result is an immutable ``ReplConfig`` built once at startup and
handed to the connection, the session manager and the sequencer.

Example playwright-repl.yaml:

    session: default
    slow_command_ms: 800
    recordings_dir: ./sessions
    daemon:
      command: npx playwright-cli
      headed: true
      browser: chrome
    logging:
      verbose: 3
      file: ~/.cache/playwright-repl.log
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from playwright_repl import __version__
from playwright_repl.errors import UserInputError
from playwright_repl.workspace import daemon_profiles_dir, socket_path, workspace_hash

CONFIG_FILENAMES = [
    "playwright-repl.yaml",
    ".playwright-repl.yaml",
    "playwright-repl.yml",
    ".playwright-repl.yml",
]

HISTORY_FILENAME = ".repl-history"


@dataclass(frozen=True)
class ReplConfig:
    """Everything the REPL needs to know, computed once."""

    session_name: str = "default"
    socket_path: str = ""
    version: str = __version__
    cwd: str = field(default_factory=os.getcwd)

    history_file: Path | None = None
    recordings_dir: Path | None = None
    """Where auto-named recordings go (None = cwd)."""

    slow_command_ms: float = 500.0
    """Commands slower than this print their elapsed time."""

    # Daemon auto-start
    auto_start: bool = True
    daemon_command: str = "playwright-cli"
    daemon_start_delay: float = 0.5
    headed: bool = False
    browser: str | None = None
    persistent: bool = False
    profile: str | None = None
    daemon_config: str | None = None

    # Output
    silent: bool = False
    verbose: int = 1
    log_file: str | None = None


def load_config(
    config_path: Path | None = None,
    cwd: Path | None = None,
    **overrides: Any,
) -> ReplConfig:
    """Load configuration from file and CLI overrides.

    Args:
        config_path: Explicit YAML file; otherwise the first of
            CONFIG_FILENAMES found in cwd is used, if any.
        cwd: Working directory (default: process cwd). Sent with every
            command and used for workspace detection.
        **overrides: ReplConfig fields from the command line. None values
            are ignored so unset options never mask the config file.
    """
    cwd = (cwd or Path.cwd()).resolve()

    if config_path is None:
        for name in CONFIG_FILENAMES:
            candidate = cwd / name
            if candidate.exists():
                config_path = candidate
                break

    values: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise UserInputError(f"Config file not found: {config_path}")
        values.update(_load_yaml_config(config_path))

    values.update({k: v for k, v in overrides.items() if v is not None})
    values["cwd"] = str(cwd)

    config = ReplConfig(**values)
    return resolve_addresses(config, cwd)


def resolve_addresses(config: ReplConfig, cwd: Path) -> ReplConfig:
    """Fill in the derived socket path and history file."""
    hash_ = workspace_hash(cwd)
    updates: dict[str, Any] = {}
    if not config.socket_path:
        updates["socket_path"] = socket_path(config.session_name, hash_)
    if config.history_file is None:
        updates["history_file"] = daemon_profiles_dir(hash_) / HISTORY_FILENAME
    return replace(config, **updates) if updates else config


def _load_yaml_config(path: Path) -> dict[str, Any]:
    """Load config values from a YAML file."""
    try:
        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise UserInputError(f"Invalid config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise UserInputError(f"Invalid config file {path}: expected a mapping")

    values: dict[str, Any] = {}

    if "session" in data:
        values["session_name"] = str(data["session"])
    if "socket" in data:
        values["socket_path"] = str(data["socket"])
    if "version" in data:
        values["version"] = str(data["version"])
    if "history_file" in data:
        values["history_file"] = Path(data["history_file"]).expanduser()
    if "recordings_dir" in data:
        values["recordings_dir"] = Path(data["recordings_dir"]).expanduser()
    if "slow_command_ms" in data:
        values["slow_command_ms"] = float(data["slow_command_ms"])
    if "silent" in data:
        values["silent"] = bool(data["silent"])

    # Parse daemon section
    daemon_data = data.get("daemon", {}) or {}
    if "auto_start" in daemon_data:
        values["auto_start"] = bool(daemon_data["auto_start"])
    if "command" in daemon_data:
        values["daemon_command"] = str(daemon_data["command"])
    if "start_delay" in daemon_data:
        values["daemon_start_delay"] = float(daemon_data["start_delay"])
    if "headed" in daemon_data:
        values["headed"] = bool(daemon_data["headed"])
    if "persistent" in daemon_data:
        values["persistent"] = bool(daemon_data["persistent"])
    for key, target in (("browser", "browser"), ("profile", "profile"), ("config", "daemon_config")):
        if daemon_data.get(key) is not None:
            values[target] = str(daemon_data[key])

    # Parse logging section
    logging_data = data.get("logging", {}) or {}
    if "verbose" in logging_data:
        values["verbose"] = int(logging_data["verbose"])
    if logging_data.get("file"):
        values["log_file"] = str(logging_data["file"])

    return values
