#!/usr/bin/env python3
"""Package metadata record and the slack-desc parser."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_SUMMARY = "Converted tgz package"

# Lifecycle hook -> file name under install/.
SCRIPT_NAMES = {
    "postinst": "doinst.sh",
    "postrm": "delete.sh",
    "prerm": "predelete.sh",
    "preinst": "predoinst.sh",
}


@dataclass
class PackageMetadata:
    """Metadata recovered from a tarball package."""

    name: str
    version: str
    architecture: str = "all"
    release: str = "1"
    summary: str = DEFAULT_SUMMARY
    description: str = DEFAULT_SUMMARY
    conffiles: list[str] = field(default_factory=list)
    filelist: list[str] = field(default_factory=list)
    scripts: dict[str, str] = field(default_factory=dict)
    source_path: Optional[Path] = None
    source_format: str = "tgz"
    copyright: str = "unknown"
    distribution: str = "Slackware/tarball"
    group: str = "unknown"

    def set_summary(self, summary: str) -> None:
        """Assign the summary, keeping only its first line."""
        self.summary = first_line(summary)

    def has_default_description(self) -> bool:
        return not self.description.strip() or self.description == DEFAULT_SUMMARY


def first_line(text: str) -> str:
    return text.split("\n", 1)[0].rstrip("\r")


class ParserState(enum.Enum):
    EXPECT_SUMMARY = "expect-summary"
    IN_DESCRIPTION = "in-description"


class LineKind(enum.Enum):
    COMMENT = "comment"
    BLANK = "blank"
    RULER = "ruler"
    SUMMARY = "summary"
    TAG_CONTENT = "tag-content"
    TAG_EMPTY = "tag-empty"
    OTHER = "other"


RULER_RE = re.compile(r"^\s*\|")


class SlackDescParser:
    """Line classifier over a slack-desc block for one package name.

    The parser walks the block once with two states. While it waits for the
    summary it skips the comment header and the ruler; the first significant
    line either is the ``name: name (summary)`` line or already belongs to the
    description. Inside the description only tagged lines survive.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.tag = f"{name}:"
        self._summary_re = re.compile(
            rf"^{re.escape(name)}:\s*{re.escape(name)}\s*\((.+)\)\s*$"
        )

    def classify(self, line: str) -> tuple[LineKind, str]:
        """Return the kind of ``line`` and the text it carries."""
        if line.startswith("#"):
            return LineKind.COMMENT, ""
        if not line.strip():
            return LineKind.BLANK, ""
        if RULER_RE.match(line):
            return LineKind.RULER, ""

        match = self._summary_re.match(line)
        if match:
            return LineKind.SUMMARY, match.group(1)

        return self.classify_tagged(line)

    def classify_tagged(self, line: str) -> tuple[LineKind, str]:
        """Classify ``line`` by the strict ``name: `` / ``name:`` prefix rule alone."""
        if line.startswith(self.tag):
            rest = line[len(self.tag):]
            if not rest.strip():
                return LineKind.TAG_EMPTY, ""
            if rest.startswith(" "):
                return LineKind.TAG_CONTENT, rest[1:]

        return LineKind.OTHER, ""

    def parse(self, text: Optional[str]) -> tuple[str, str]:
        """Return ``(summary, description)`` recovered from ``text``."""
        if not text or not text.strip():
            return DEFAULT_SUMMARY, DEFAULT_SUMMARY

        summary = DEFAULT_SUMMARY
        description_lines: list[str] = []
        state = ParserState.EXPECT_SUMMARY

        for raw_line in text.splitlines():
            line = raw_line.rstrip("\r")
            kind, value = self.classify(line)

            if kind is LineKind.COMMENT:
                continue

            if state is ParserState.EXPECT_SUMMARY:
                if kind in (LineKind.BLANK, LineKind.RULER):
                    continue
                state = ParserState.IN_DESCRIPTION
                if kind is LineKind.SUMMARY:
                    summary = value
                    continue

            if kind is LineKind.SUMMARY:
                kind, value = self.classify_tagged(line)

            if kind is LineKind.TAG_EMPTY:
                description_lines.append("")
            elif kind is LineKind.TAG_CONTENT:
                description_lines.append(value)

        while description_lines and not description_lines[0].strip():
            description_lines.pop(0)
        while description_lines and not description_lines[-1].strip():
            description_lines.pop()

        description = "\n".join(description_lines)
        if not description.strip():
            description = summary
        return summary, description


def parse_slack_desc(text: Optional[str], name: str) -> tuple[str, str]:
    """Recover ``(summary, description)`` from a slack-desc block.

    Never raises: absent or malformed input degrades to ``DEFAULT_SUMMARY``.
    """
    return SlackDescParser(name).parse(text)
