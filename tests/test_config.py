"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from playwright_repl.config import ReplConfig, load_config, resolve_addresses
from playwright_repl.errors import UserInputError
from playwright_repl.workspace import SOCKETS_DIR_ENV, workspace_hash


@pytest.fixture(autouse=True)
def sockets_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "sockets"
    monkeypatch.setenv(SOCKETS_DIR_ENV, str(path))
    return path


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults(self, tmp_path: Path, sockets_dir: Path) -> None:
        """Without a file or overrides, defaults apply and addresses are derived."""
        config = load_config(cwd=tmp_path)
        assert config.session_name == "default"
        assert config.cwd == str(tmp_path.resolve())
        assert config.auto_start is True
        assert config.socket_path == str(
            sockets_dir / workspace_hash(tmp_path.resolve()) / "default.sock"
        )
        assert config.history_file is not None
        assert config.history_file.name == ".repl-history"

    def test_discovers_file_in_cwd(self, tmp_path: Path) -> None:
        """playwright-repl.yaml in the working directory is picked up."""
        (tmp_path / "playwright-repl.yaml").write_text("session: work\n", encoding="utf-8")
        config = load_config(cwd=tmp_path)
        assert config.session_name == "work"
        assert config.socket_path.endswith("work.sock")

    def test_hidden_file_discovered(self, tmp_path: Path) -> None:
        """The dot-prefixed variant is found too."""
        (tmp_path / ".playwright-repl.yml").write_text("slow_command_ms: 900\n", encoding="utf-8")
        assert load_config(cwd=tmp_path).slow_command_ms == 900.0

    def test_sections(self, tmp_path: Path) -> None:
        """Daemon and logging sections map onto config fields."""
        path = tmp_path / "custom.yaml"
        path.write_text(
            "recordings_dir: ~/sessions\n"
            "silent: true\n"
            "daemon:\n"
            "  auto_start: false\n"
            "  command: npx playwright-cli\n"
            "  start_delay: 1.5\n"
            "  headed: true\n"
            "  browser: firefox\n"
            "  config: daemon.json\n"
            "logging:\n"
            "  verbose: 3\n"
            "  file: /tmp/repl.log\n",
            encoding="utf-8",
        )
        config = load_config(config_path=path, cwd=tmp_path)
        assert config.recordings_dir == Path("~/sessions").expanduser()
        assert config.silent is True
        assert config.auto_start is False
        assert config.daemon_command == "npx playwright-cli"
        assert config.daemon_start_delay == 1.5
        assert config.headed is True
        assert config.browser == "firefox"
        assert config.daemon_config == "daemon.json"
        assert config.verbose == 3
        assert config.log_file == "/tmp/repl.log"

    def test_explicit_socket_kept(self, tmp_path: Path) -> None:
        """A socket from the file is not replaced by the derived one."""
        path = tmp_path / "c.yaml"
        path.write_text("socket: /run/custom.sock\n", encoding="utf-8")
        assert load_config(config_path=path, cwd=tmp_path).socket_path == "/run/custom.sock"

    def test_overrides_win(self, tmp_path: Path) -> None:
        """Command-line values override the file."""
        path = tmp_path / "c.yaml"
        path.write_text("session: fromfile\ndaemon:\n  headed: false\n", encoding="utf-8")
        config = load_config(config_path=path, cwd=tmp_path, session_name="cli", headed=True)
        assert config.session_name == "cli"
        assert config.headed is True

    def test_none_overrides_ignored(self, tmp_path: Path) -> None:
        """Unset command-line options do not mask the file."""
        path = tmp_path / "c.yaml"
        path.write_text("session: fromfile\n", encoding="utf-8")
        config = load_config(config_path=path, cwd=tmp_path, session_name=None, silent=None)
        assert config.session_name == "fromfile"
        assert config.silent is False

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file means defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(config_path=path, cwd=tmp_path).session_name == "default"

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        """An explicit path that does not exist is an error."""
        with pytest.raises(UserInputError, match="Config file not found"):
            load_config(config_path=tmp_path / "nope.yaml", cwd=tmp_path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Unparseable YAML is reported as a config error."""
        path = tmp_path / "bad.yaml"
        path.write_text("session: [unclosed\n", encoding="utf-8")
        with pytest.raises(UserInputError, match="Invalid config file"):
            load_config(config_path=path, cwd=tmp_path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        """A YAML list is not a valid config."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(UserInputError, match="expected a mapping"):
            load_config(config_path=path, cwd=tmp_path)


class TestResolveAddresses:
    """Tests for resolve_addresses()."""

    def test_fills_missing(self, tmp_path: Path) -> None:
        """Socket and history are derived when unset."""
        config = resolve_addresses(ReplConfig(session_name="s1"), tmp_path)
        assert config.socket_path.endswith("s1.sock")
        assert config.history_file is not None

    def test_keeps_explicit(self, tmp_path: Path) -> None:
        """Explicit values are returned unchanged."""
        config = ReplConfig(socket_path="/x.sock", history_file=tmp_path / "h")
        assert resolve_addresses(config, tmp_path) is config
