from __future__ import annotations

import pytest

from eziges.errors import UnknownSectionTag
from eziges.sections import split_sections
from tests._iges_helpers import entity, IgesBuilder, line_iges


def test_split_sections_routes_lines_by_tag() -> None:
    sections = split_sections(line_iges())

    assert sections.start == "eziges test file"
    assert sections.global_.startswith("1H,,1H;,6Heziges,")
    assert sections.global_.endswith(";")
    assert len(sections.directory) == 160
    assert sections.directory[:8] == "     110"
    assert sections.parameter == (
        "110,-30.13380241394043,13.59160041809082,0,31.40465545654297,"
        "42.65143585205078,0;"
    )
    assert sections.terminate.startswith("S      1G")
    assert sections.line_counts["D"] == 2
    assert sections.line_counts["P"] == 2
    assert sections.parameter_line_offsets == (0, 61)


def test_split_sections_accepts_crlf_and_blank_lines() -> None:
    lines = IgesBuilder(entities=[entity(116, 1, 2, 3)]).lines()
    text = "\r\n".join(lines[:2] + ["", "   "] + lines[2:]) + "\r\n"

    sections = split_sections(text)

    assert sections.line_counts["S"] == 1
    assert len(sections.directory) == 160
    assert sections.parameter == "116,1,2,3;"


def test_split_sections_pads_short_directory_lines() -> None:
    lines = IgesBuilder(entities=[entity(116, 1, 2, 3)]).lines()
    directory_index = next(i for i, line in enumerate(lines) if line[72] == "D")
    lines[directory_index] = lines[directory_index][:73]

    sections = split_sections("\n".join(lines))

    assert len(sections.directory) == 160


def test_split_sections_rejects_unknown_tag() -> None:
    lines = IgesBuilder(entities=[entity(116, 1, 2, 3)]).lines()
    lines.insert(1, f"{'garbage':<72}X{1:>7}")

    with pytest.raises(UnknownSectionTag) as exc_info:
        split_sections("\n".join(lines))

    assert exc_info.value.tag == "X"
    assert exc_info.value.line_number == 2


def test_split_sections_rejects_line_without_tag_column() -> None:
    with pytest.raises(UnknownSectionTag):
        split_sections("too short\n")


def test_split_sections_records_parameter_line_owners() -> None:
    sections = split_sections(line_iges())

    assert sections.parameter_line_owners == (1, 1)


def test_split_sections_line_counts_are_read_only() -> None:
    sections = split_sections(line_iges())

    with pytest.raises(TypeError):
        sections.line_counts["P"] = 0
    assert sections.line_counts["P"] == 2
