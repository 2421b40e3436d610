"""Tests for the slack-desc layout engine."""

from __future__ import annotations

import pytest

from tgz2slack.metadata import parse_slack_desc
from tgz2slack.slackdesc import (
    DESCRIPTION_LINES,
    HEADER,
    normalize_description,
    render_section,
    render_slack_desc,
    ruler_line,
    screen_width,
)
from tgz2slack.utils import ValidationError

PLY_SUMMARY = "Light-weight dynamic tracer for Linux"
PLY_DESCRIPTION = (
    "ply dynamically instruments the running kernel\n"
    "to aggregate and extract user-defined data. It compiles an input\n"
    "program into one or more Linux bpf(2) binaries and attaches them to arbitrary\n"
    "points in the kernel using kprobes and tracepoints.\n"
    "\n"
    "ply follows the Little Language approach of yore,\n"
    "compiling ply scripts into Linux BPF programs."
)


def description_lines(block: str) -> list[str]:
    lines = block.splitlines()
    return lines[len(HEADER) + 3:]


def test_ply_scenario_is_byte_exact():
    block = render_slack_desc("ply", PLY_SUMMARY, PLY_DESCRIPTION)
    lines = block.splitlines()

    assert lines[: len(HEADER)] == list(HEADER)
    assert lines[len(HEADER)] == "   |-----handy-ruler--" + "-" * 52 + "|"
    assert lines[len(HEADER) + 1] == "ply: ply (Light-weight dynamic tracer for Linux)"
    assert lines[len(HEADER) + 2] == "ply:"
    assert description_lines(block) == [
        "ply: ply dynamically instruments the running kernel to aggregate and",
        "ply: extract user-defined data. It compiles an input program into one or",
        "ply: more Linux bpf(2) binaries and attaches them to arbitrary points in",
        "ply: the kernel using kprobes and tracepoints.",
        "ply:",
        "ply: ply follows the Little Language approach of yore, compiling ply",
        "ply: scripts into Linux BPF programs.",
        "ply:",
        "ply:",
    ]
    assert block.endswith("ply:\n")
    assert not block.endswith("\n\n")


def test_ruler_width_tracks_name_length():
    for name in ("a", "ply", "some-really-long-package-name"):
        ruler = ruler_line(name)
        assert len(ruler) == screen_width(name) == 72 + len(name)
        assert ruler.startswith(" " * len(name) + "|-----handy-ruler--")
        assert ruler.endswith("-|")


@pytest.mark.parametrize(
    "description",
    ["", "   \n\t\n ", "word", PLY_DESCRIPTION, " ".join(["lorem ipsum dolor"] * 200)],
)
def test_description_always_has_fixed_line_count(description):
    block = render_slack_desc("pkg", "summary", description)
    lines = block.splitlines()
    assert len(lines) == len(HEADER) + 1 + 1 + 1 + DESCRIPTION_LINES
    assert all(line == "pkg:" or line.startswith("pkg: ") for line in lines[len(HEADER) + 1:])


def test_empty_description_renders_bare_tags():
    assert description_lines(render_slack_desc("pkg", "summary", "  \n ")) == ["pkg:"] * DESCRIPTION_LINES


def test_lines_respect_screen_width():
    text = " ".join(f"word{index}" for index in range(400))
    for name in ("x", "ply", "libreoffice-dictionaries"):
        for line in render_section(name, text, 30):
            assert len(line) <= screen_width(name)


def test_overlong_word_is_cut_on_its_own_line():
    long_word = "x" * 100
    lines = render_section("pkg", f"short {long_word} tail", 4)
    assert lines == [
        "pkg: short",
        "pkg: " + "x" * 70,
        "pkg: tail",
        "pkg:",
    ]
    assert len(lines[1]) == len("pkg") + 2 + 70


def test_content_width_has_a_floor():
    lines = render_section("abc", "abcdefghijklmnop qrs", 3, width=12)
    assert lines == ["abc: abcdefghij", "abc: qrs", "abc:"]


def test_paragraph_break_becomes_bare_tag_line():
    lines = render_section("pkg", normalize_description("first para\n\n\n\nsecond\npara"), 5)
    assert lines == ["pkg: first para", "pkg:", "pkg: second para", "pkg:", "pkg:"]


def test_whitespace_only_blank_lines_count_as_paragraph_breaks():
    assert normalize_description("one\n  \t\ntwo\nthree") == "one\n\ntwo three"


def test_truncation_keeps_prefix_of_full_wrap():
    text = normalize_description(
        "\n\n".join(" ".join(f"w{para}-{index}" for index in range(60)) for para in range(5))
    )
    full = render_section("pkg", text, 1000)
    assert render_section("pkg", text, DESCRIPTION_LINES) == full[:DESCRIPTION_LINES]


def test_truncation_stops_inside_a_paragraph_budget():
    lines = render_section("pkg", "a\nb\nc\nd", 2)
    assert lines == ["pkg: a", "pkg: b"]


def test_summary_keeps_only_first_line():
    block = render_slack_desc("pkg", "first line\nsecond line", "body")
    assert "pkg: pkg (first line)" in block.splitlines()
    assert "second line" not in block


def test_rendering_is_stable_through_the_parser():
    first = render_slack_desc("ply", PLY_SUMMARY, PLY_DESCRIPTION)
    summary, description = parse_slack_desc(first, "ply")
    assert summary == PLY_SUMMARY
    assert render_slack_desc("ply", summary, description) == first


@pytest.mark.parametrize("name", ["", "bad:name", "two words"])
def test_unusable_names_are_rejected(name):
    with pytest.raises(ValidationError):
        render_slack_desc(name, "summary", "description")


def test_custom_line_budget_and_width():
    block = render_slack_desc("pkg", "s", "one two three four five", description_lines=2, base_width=20)
    lines = block.splitlines()
    assert lines[len(HEADER)] == "   |-----handy-ruler--|"
    assert lines[len(HEADER) + 3:] == ["pkg: one two three four", "pkg: five"]
