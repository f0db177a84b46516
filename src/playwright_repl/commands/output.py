"""Response text filtering for display."""

from __future__ import annotations

import re

# Sections of the daemon's markdown-ish reply worth showing in a REPL
SHOWN_SECTIONS = ("Result", "Error", "Modal state")

_SECTION_SPLIT = re.compile(r"^### ", re.MULTILINE)


def filter_response(text: str) -> str | None:
    """Keep the bodies of the Result, Error and Modal state sections.

    The daemon replies with ``### Title`` sections; everything else (page
    snapshots, generated code, tab lists) is noise at the prompt.

    Returns:
        The kept bodies joined by newlines, or None if nothing was kept.
    """
    kept = []
    for section in _SECTION_SPLIT.split(text)[1:]:
        title, newline, body = section.partition("\n")
        if not newline:
            continue
        if title.strip() in SHOWN_SECTIONS:
            kept.append(body.strip())
    return "\n".join(kept) if kept else None
