#!/usr/bin/env python3
"""Render package metadata as a Slackware ``install/slack-desc`` block.

The block has a fixed shape that pkgtool and friends rely on:

* a comment header explaining how to edit the file,
* a "handy ruler" whose right edge marks the last usable column,
* one summary line, ``name: name (summary)``,
* one bare ``name:`` separator line,
* exactly ``DESCRIPTION_LINES`` description lines.

Every content line carries the ``name:`` tag, and the usable width grows with
the length of the name, so the ruler and the wrapping budget are computed per
package.
"""

from __future__ import annotations

import re
from typing import Optional

from .metadata import first_line
from .utils import ValidationError

BASE_WIDTH = 72
DESCRIPTION_LINES = 9
MIN_CONTENT_WIDTH = 10
RULER_TOKEN = "|-----handy-ruler--"

HEADER = (
    "# HOW TO EDIT THIS FILE:",
    "# The \"handy ruler\" below makes it easier to edit a package description.  Line",
    "# up the first '|' above the ':' following the base package name, and the '|' on",
    "# the right side marks the last column you can put a character in.  You must make",
    "# exactly 11 lines for the formatting to be correct.  It's also customary to",
    "# leave one space after the ':'.",
    "",
)

PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t]*\n\s*")


def screen_width(name: str, base_width: int = BASE_WIDTH) -> int:
    """Total width of a tagged line for ``name``, tag included."""
    return base_width + len(name)


def validate_name(name: str) -> None:
    if not name:
        raise ValidationError("Package name must not be empty")
    if ":" in name or any(char.isspace() for char in name):
        raise ValidationError(f"Package name cannot be used as a slack-desc tag: {name!r}")


def normalize_description(text: str) -> str:
    """Keep blank-line paragraph breaks as ``\\n\\n``, fold single breaks into spaces."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    paragraphs = PARAGRAPH_BREAK_RE.split(text)
    return "\n\n".join(paragraph.replace("\n", " ") for paragraph in paragraphs)


def ruler_line(name: str, base_width: int = BASE_WIDTH) -> str:
    """Return the handy ruler, ``screen_width`` characters wide."""
    width = screen_width(name, base_width)
    fill = max(width - 1 - len(name) - len(RULER_TOKEN), 0)
    return " " * len(name) + RULER_TOKEN + "-" * fill + "|"


def render_section(
    name: str,
    text: str,
    line_count: int,
    width: Optional[int] = None,
) -> list[str]:
    """Wrap ``text`` into exactly ``line_count`` tagged lines.

    ``text`` is split on ``\\n`` into paragraphs; an empty paragraph becomes a
    bare ``name:`` line. Words are packed greedily. A word longer than the
    content budget gets a line of its own, cut to the budget. Output stops as
    soon as ``line_count`` lines exist and is padded with bare tags otherwise.
    """
    if width is None:
        width = screen_width(name)
    max_content_len = max(width - (len(name) + 2), MIN_CONTENT_WIDTH)
    tag = f"{name}:"
    lines: list[str] = []

    def emit(content: str) -> bool:
        lines.append(f"{tag} {content}" if content else tag)
        return len(lines) >= line_count

    if line_count <= 0:
        return lines

    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            if emit(""):
                return lines
            continue

        current = ""
        for word in words:
            if len(word) > max_content_len:
                if current and emit(current):
                    return lines
                current = ""
                if emit(word[:max_content_len]):
                    return lines
                continue

            candidate = f"{current} {word}" if current else word
            if len(candidate) <= max_content_len:
                current = candidate
                continue

            if emit(current):
                return lines
            current = word

        if current and emit(current):
            return lines

    while len(lines) < line_count:
        lines.append(tag)
    return lines


def render_slack_desc(
    name: str,
    summary: str,
    description: str,
    *,
    description_lines: int = DESCRIPTION_LINES,
    base_width: int = BASE_WIDTH,
) -> str:
    """Render the complete slack-desc file content for one package."""
    validate_name(name)
    width = screen_width(name, base_width)

    body: list[str] = list(HEADER)
    body.append(ruler_line(name, base_width))
    body.extend(render_section(name, f"{name} ({first_line(summary)})", 1, width))
    body.extend(render_section(name, "", 1, width))
    body.extend(render_section(name, normalize_description(description), description_lines, width))
    return "\n".join(body) + "\n"
