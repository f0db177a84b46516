"""Command vocabulary understood by the daemon's CLI layer."""

from __future__ import annotations

from typing import NamedTuple


class CommandInfo(NamedTuple):
    desc: str
    options: tuple[str, ...] = ()


COMMANDS: dict[str, CommandInfo] = {
    "open": CommandInfo("Open the browser"),
    "close": CommandInfo("Close the browser"),
    "goto": CommandInfo("Navigate to a URL"),
    "go-back": CommandInfo("Go back"),
    "go-forward": CommandInfo("Go forward"),
    "reload": CommandInfo("Reload page"),
    "click": CommandInfo("Click an element", ("--button", "--modifiers")),
    "dblclick": CommandInfo("Double-click", ("--button", "--modifiers")),
    "fill": CommandInfo("Fill a form field", ("--submit",)),
    "type": CommandInfo("Type text key by key", ("--submit",)),
    "press": CommandInfo("Press a keyboard key"),
    "hover": CommandInfo("Hover over element"),
    "select": CommandInfo("Select dropdown option"),
    "check": CommandInfo("Check a checkbox"),
    "uncheck": CommandInfo("Uncheck a checkbox"),
    "upload": CommandInfo("Upload a file"),
    "drag": CommandInfo("Drag and drop"),
    "snapshot": CommandInfo("Accessibility snapshot", ("--filename",)),
    "screenshot": CommandInfo("Take a screenshot", ("--filename", "--fullPage")),
    "eval": CommandInfo("Evaluate JavaScript"),
    "console": CommandInfo("Console messages", ("--clear",)),
    "network": CommandInfo("Network requests", ("--clear", "--includeStatic")),
    "run-code": CommandInfo("Run Playwright code"),
    "tab-list": CommandInfo("List tabs"),
    "tab-new": CommandInfo("New tab"),
    "tab-close": CommandInfo("Close tab"),
    "tab-select": CommandInfo("Select tab"),
    "cookie-list": CommandInfo("List cookies"),
    "cookie-get": CommandInfo("Get cookie"),
    "cookie-set": CommandInfo("Set cookie"),
    "cookie-delete": CommandInfo("Delete cookie"),
    "cookie-clear": CommandInfo("Clear cookies"),
    "localstorage-list": CommandInfo("List localStorage"),
    "localstorage-get": CommandInfo("Get localStorage"),
    "localstorage-set": CommandInfo("Set localStorage"),
    "localstorage-delete": CommandInfo("Delete localStorage"),
    "localstorage-clear": CommandInfo("Clear localStorage"),
    "sessionstorage-list": CommandInfo("List sessionStorage"),
    "sessionstorage-get": CommandInfo("Get sessionStorage"),
    "sessionstorage-set": CommandInfo("Set sessionStorage"),
    "sessionstorage-delete": CommandInfo("Delete sessionStorage"),
    "sessionstorage-clear": CommandInfo("Clear sessionStorage"),
    "state-save": CommandInfo("Save storage state", ("--filename",)),
    "state-load": CommandInfo("Load storage state"),
    "dialog-accept": CommandInfo("Accept dialog"),
    "dialog-dismiss": CommandInfo("Dismiss dialog"),
    "route": CommandInfo("Add network route"),
    "route-list": CommandInfo("List routes"),
    "unroute": CommandInfo("Remove route"),
    "resize": CommandInfo("Resize window"),
    "pdf": CommandInfo("Save as PDF", ("--filename",)),
    "config-print": CommandInfo("Print config"),
    "install-browser": CommandInfo("Install browser"),
    "list": CommandInfo("List sessions"),
    "close-all": CommandInfo("Close all sessions"),
    "kill-all": CommandInfo("Kill all daemons"),
}

ALL_COMMANDS: list[str] = list(COMMANDS)

# Handled by the REPL itself or translated before sending
EXTRA_COMMANDS = (
    "help",
    "list",
    "close-all",
    "kill-all",
    "install",
    "install-browser",
    "verify-text",
    "verify-element",
    "verify-value",
    "verify-list",
)

# Grouping for .help
CATEGORIES: dict[str, tuple[str, ...]] = {
    "Navigation": ("open", "goto", "go-back", "go-forward", "reload"),
    "Interaction": (
        "click", "dblclick", "fill", "type", "press", "hover",
        "select", "check", "uncheck", "drag",
    ),
    "Inspection": ("snapshot", "screenshot", "eval", "console", "network", "run-code"),
    "Tabs": ("tab-list", "tab-new", "tab-close", "tab-select"),
    "Storage": (
        "cookie-list", "cookie-get", "localstorage-list",
        "localstorage-get", "state-save", "state-load",
    ),
}


def is_known_command(name: str) -> bool:
    return name in COMMANDS or name in EXTRA_COMMANDS


def command_options(name: str) -> tuple[str, ...]:
    """``--option`` names a command accepts (for completion)."""
    info = COMMANDS.get(name)
    return info.options if info else ()
