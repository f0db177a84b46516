"""Command parsing, vocabulary and translation."""

from playwright_repl.commands.output import filter_response
from playwright_repl.commands.parser import ALIASES, BOOLEAN_OPTIONS, ParsedCommand, parse_input, tokenize
from playwright_repl.commands.translate import translate
from playwright_repl.commands.vocabulary import ALL_COMMANDS, COMMANDS, is_known_command

__all__ = [
    "ALIASES",
    "ALL_COMMANDS",
    "BOOLEAN_OPTIONS",
    "COMMANDS",
    "ParsedCommand",
    "filter_response",
    "is_known_command",
    "parse_input",
    "tokenize",
    "translate",
]
