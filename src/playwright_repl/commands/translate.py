"""Translations of REPL-only commands into ``run-code`` calls.

The daemon has browser_verify_* tools but no CLI keywords for them, so
``verify-*`` commands are rewritten into equivalent Playwright API calls.
Interaction commands given visible text instead of a ref (``click Submit``
rather than ``click e5``) are rewritten to use Playwright's text locators.
"""

from __future__ import annotations

import re
from typing import Any

from playwright_repl.commands.parser import ParsedCommand
from playwright_repl.errors import UserInputError

VERIFY_COMMANDS = ("verify-text", "verify-element", "verify-value", "verify-list")
TEXT_LOCATOR_COMMANDS = ("click", "dblclick", "hover", "fill", "select", "check", "uncheck")

REF_PATTERN = re.compile(r"^e\d+$")


def _esc(s: str) -> str:
    """Escape for a single-quoted JavaScript string literal."""
    return s.replace("\\", "\\\\").replace("'", "\\'")


def _run_code(code: str) -> dict[str, Any]:
    return {"_": ["run-code", code]}


def verify_to_run_code(name: str, args: list[str]) -> dict[str, Any] | None:
    """Build run-code args for a verify-* command.

    Returns None when the command is unknown or its arguments are missing.
    """
    if name == "verify-text":
        text = " ".join(args)
        if not text:
            return None
        t = _esc(text)
        return _run_code(
            f"async (page) => {{ if (await page.getByText('{t}').filter({{ visible: true }})"
            f".count() === 0) throw new Error('Text not found: {t}'); }}"
        )

    if name == "verify-element":
        if not args:
            return None
        role, name_parts = args[0], args[1:]
        accessible_name = " ".join(name_parts)
        if not role or not accessible_name:
            return None
        r, n = _esc(role), _esc(accessible_name)
        return _run_code(
            f"async (page) => {{ if (await page.getByRole('{r}', {{ name: '{n}' }}).count() === 0) "
            f"throw new Error('Element not found: {r} \"{n}\"'); }}"
        )

    if name == "verify-value":
        if not args:
            return None
        ref, value = args[0], " ".join(args[1:])
        if not ref or not value:
            return None
        r, v = _esc(ref), _esc(value)
        return _run_code(
            f"async (page) => {{ const el = page.locator('[aria-ref=\"{r}\"]'); "
            f"const v = await el.inputValue(); "
            f"if (v !== '{v}') throw new Error('Expected \"{v}\", got \"' + v + '\"'); }}"
        )

    if name == "verify-list":
        if len(args) < 2 or not args[0]:
            return None
        ref, items = args[0], args[1:]
        checks = " ".join(
            f"if (await loc.getByText('{_esc(item)}').count() === 0) "
            f"throw new Error('Item not found: {_esc(item)}');"
            for item in items
        )
        return _run_code(
            f"async (page) => {{ const loc = page.locator('[aria-ref=\"{_esc(ref)}\"]'); {checks} }}"
        )

    return None


def _find_clickable(text: str, action: str) -> str:
    return (
        "async (page) => {\n"
        f"  let loc = page.getByText('{text}', {{ exact: true }});\n"
        f"  if (await loc.count() === 0) loc = page.getByRole('button', {{ name: '{text}' }});\n"
        f"  if (await loc.count() === 0) loc = page.getByRole('link', {{ name: '{text}' }});\n"
        f"  if (await loc.count() === 0) loc = page.getByText('{text}');\n"
        f"  await loc.{action}();\n"
        "}"
    )


def _toggle_checkbox(text: str, action: str) -> str:
    # Scope to a listitem with matching text first, then fall back to labels
    return (
        "async (page) => {\n"
        f"  const item = page.getByRole('listitem').filter({{ hasText: '{text}' }});\n"
        f"  if (await item.count() > 0) {{ await item.getByRole('checkbox').{action}(); return; }}\n"
        f"  let loc = page.getByLabel('{text}');\n"
        f"  if (await loc.count() === 0) loc = page.getByRole('checkbox', {{ name: '{text}' }});\n"
        f"  await loc.{action}();\n"
        "}"
    )


def text_to_run_code(name: str, text_arg: str, extra_args: list[str]) -> dict[str, Any] | None:
    """Build run-code args that locate an element by its visible text.

    click "Active"       -> page.getByText("Active").click()
    fill "Email" "test"  -> page.getByLabel("Email").fill("test")
    check "Buy milk"     -> listitem with text -> checkbox.check()
    """
    text = _esc(text_arg)

    if name in ("click", "dblclick", "hover"):
        return _run_code(_find_clickable(text, name))

    if name == "fill":
        value = _esc(extra_args[0] if extra_args else "")
        return _run_code(
            "async (page) => {\n"
            f"  let loc = page.getByLabel('{text}');\n"
            f"  if (await loc.count() === 0) loc = page.getByPlaceholder('{text}');\n"
            f"  if (await loc.count() === 0) loc = page.getByRole('textbox', {{ name: '{text}' }});\n"
            f"  await loc.fill('{value}');\n"
            "}"
        )

    if name == "select":
        value = _esc(extra_args[0] if extra_args else "")
        return _run_code(
            "async (page) => {\n"
            f"  let loc = page.getByLabel('{text}');\n"
            f"  if (await loc.count() === 0) loc = page.getByRole('combobox', {{ name: '{text}' }});\n"
            f"  await loc.selectOption('{value}');\n"
            "}"
        )

    if name in ("check", "uncheck"):
        return _run_code(_toggle_checkbox(text, name))

    return None


def translate(command: ParsedCommand) -> dict[str, Any]:
    """Final ``run`` args for a command, after REPL-side translations.

    Raises:
        UserInputError: A verify-* command is missing its arguments.
    """
    name = command.name

    if name in VERIFY_COMMANDS:
        translated = verify_to_run_code(name, command.args)
        if translated is None:
            raise UserInputError(f"Usage: {name} <args>")
        return translated

    if name in TEXT_LOCATOR_COMMANDS and command.args and not REF_PATTERN.match(command.args[0]):
        translated = text_to_run_code(name, command.args[0], command.args[1:])
        if translated is not None:
            return translated

    return command.to_args()


def is_translated(args: dict[str, Any]) -> bool:
    return args.get("_", [None])[0] == "run-code"
