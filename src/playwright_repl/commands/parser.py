"""Input parser - turns a typed line into minimist-style daemon args.

Flow: "c e5" -> tokenize -> alias -> ["click", "e5"] -> flags -> {"_": ["click", "e5"]}

The resulting args object is sent to the daemon as-is; the daemon maps it
to a tool call. Option handling follows minimist (the parser the daemon's
own CLI uses) for the forms people actually type:

    --name value    --name=value    --name    --no-name    -x    --
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from playwright_repl.commands.vocabulary import ALL_COMMANDS

# ─── Command aliases ─────────────────────────────────────────────────────────

ALIASES: dict[str, str] = {
    # Navigation
    "o": "open",
    "g": "goto",
    "go": "goto",
    "back": "go-back",
    "fwd": "go-forward",
    "r": "reload",
    # Interaction
    "c": "click",
    "dc": "dblclick",
    "t": "type",
    "f": "fill",
    "h": "hover",
    "p": "press",
    "sel": "select",
    "chk": "check",
    "unchk": "uncheck",
    # Inspection
    "s": "snapshot",
    "snap": "snapshot",
    "ss": "screenshot",
    "e": "eval",
    "con": "console",
    "net": "network",
    # Tabs
    "tl": "tab-list",
    "tn": "tab-new",
    "tc": "tab-close",
    "ts": "tab-select",
    # Assertions (translated to run-code by the REPL)
    "vt": "verify-text",
    "ve": "verify-element",
    "vv": "verify-value",
    "vl": "verify-list",
    # Session
    "q": "close",
    "ls": "list",
}

# Options the daemon's CLI declares boolean
BOOLEAN_OPTIONS = frozenset({
    "headed",
    "persistent",
    "extension",
    "submit",
    "clear",
    "fullPage",
    "includeStatic",
})

__all__ = [
    "ALIASES",
    "ALL_COMMANDS",
    "BOOLEAN_OPTIONS",
    "ParsedCommand",
    "parse_input",
    "tokenize",
]

FlagValue = str | bool

# minimist: a value token must not look like another option
_FLAG_RE = re.compile(r"^(-|--)[^-]")
_ASSIGN_RE = re.compile(r"^--.+=")


@dataclass
class ParsedCommand:
    """One normalized input line.

    ``positional`` mirrors minimist's ``_`` array, so the command name is
    its first element.
    """

    raw: str
    tokens: list[str]
    positional: list[str] = field(default_factory=list)
    flags: dict[str, FlagValue] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.positional[0] if self.positional else ""

    @property
    def args(self) -> list[str]:
        """Positional arguments after the command name."""
        return self.positional[1:]

    def to_args(self) -> dict[str, Any]:
        """The ``params.args`` object for a ``run`` request."""
        return {"_": list(self.positional), **self.flags}


def tokenize(line: str) -> list[str]:
    """Split on spaces/tabs outside quotes.

    "fill e7 'hello world'" -> ["fill", "e7", "hello world"]

    Single and double quotes both open a span closed by the same character.
    Quote characters are dropped; an unterminated quote runs to end of line.
    Never fails.
    """
    tokens: list[str] = []
    current: list[str] = []
    in_quote: str | None = None

    for ch in line:
        if in_quote:
            if ch == in_quote:
                in_quote = None
            else:
                current.append(ch)
        elif ch in ("'", '"'):
            in_quote = ch
        elif ch in (" ", "\t"):
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(ch)

    if current:
        tokens.append("".join(current))
    return tokens


def _looks_like_flag(token: str) -> bool:
    return _FLAG_RE.match(token) is not None


def _bool_from_text(value: str) -> bool:
    return value != "false"


def _option_value(key: str, following: str | None) -> tuple[FlagValue, bool]:
    """Value for a bare ``--key``/``-k`` option and whether it consumed the next token."""
    if following is not None and not _looks_like_flag(following) and key not in BOOLEAN_OPTIONS:
        return following, True
    if following in ("true", "false"):
        return following == "true", True
    return True, False


def _parse_flags(tokens: list[str]) -> tuple[list[str], dict[str, FlagValue]]:
    """Split tokens into minimist ``_`` positionals and a flag map.

    Only flags that appear in the tokens end up in the map; declared boolean
    options are never filled in with a default ``False``.
    """
    positional: list[str] = []
    flags: dict[str, FlagValue] = {}

    i = 0
    while i < len(tokens):
        token = tokens[i]
        following = tokens[i + 1] if i + 1 < len(tokens) else None
        consumed = False

        if token == "--":
            positional.extend(tokens[i + 1:])
            break

        if _ASSIGN_RE.match(token):
            key, _, value = token[2:].partition("=")
            flags[key] = _bool_from_text(value) if key in BOOLEAN_OPTIONS else value

        elif token.startswith("--no-") and len(token) > 5:
            flags[token[5:]] = False

        elif token.startswith("--") and len(token) > 2:
            key = token[2:]
            flags[key], consumed = _option_value(key, following)

        elif token.startswith("-") and len(token) > 1 and token[1] != "-":
            letters = token[1:]
            if "=" in letters:
                key, _, value = letters.partition("=")
                flags[key] = value
            else:
                for letter in letters[:-1]:
                    flags[letter] = True
                key = letters[-1]
                flags[key], consumed = _option_value(key, following)

        else:
            positional.append(token)

        i += 2 if consumed else 1

    return positional, flags


def parse_input(line: str) -> ParsedCommand | None:
    """Parse a REPL input line into a command ready for the daemon.

    Returns None if the line is empty or whitespace only.
    """
    tokens = tokenize(line)
    if not tokens:
        return None

    # Resolve alias
    alias = ALIASES.get(tokens[0].lower())
    if alias:
        tokens[0] = alias

    positional, flags = _parse_flags(tokens)

    return ParsedCommand(
        raw=line.strip(),
        tokens=tokens,
        positional=[str(p) for p in positional],
        flags={k: v if isinstance(v, bool) else str(v) for k, v in flags.items()},
    )
