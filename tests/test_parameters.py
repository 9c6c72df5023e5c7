from __future__ import annotations

import math

import pytest

from eziges.directory import decode_directory
from eziges.errors import DiagnosticKind
from eziges.parameters import decode_parameters
from eziges.sections import split_sections
from tests._iges_helpers import LINE_PARAMS, build_iges, entity


def _decode(text: str, **kwargs):
    sections = split_sections(text)
    records, _ = decode_directory(sections.directory)
    return decode_parameters(
        sections.parameter,
        records,
        line_offsets=sections.parameter_line_offsets,
        line_owners=sections.parameter_line_owners,
        **kwargs,
    )


def test_parameter_groups_join_directory_by_position() -> None:
    entities, diagnostics = _decode(build_iges(entity(110, *LINE_PARAMS), entity(116, 10, 20, 30)))

    assert diagnostics == []
    assert [item.type for item in entities] == ["110", "116"]
    assert entities[0].params == (
        -30.13380241394043,
        13.59160041809082,
        0.0,
        31.40465545654297,
        42.65143585205078,
        0.0,
    )
    assert entities[1].params == (10.0, 20.0, 30.0)
    assert entities[1].sequence_number == 3


def test_missing_parameter_groups_leave_empty_params() -> None:
    text = build_iges(entity(110, *LINE_PARAMS), entity(116, 10, 20, 30))
    sections = split_sections(text)
    records, _ = decode_directory(sections.directory)
    first_group = sections.parameter.split(";")[0] + ";"

    entities, diagnostics = decode_parameters(first_group, records)

    assert diagnostics == []
    assert entities[1].type == "116"
    assert entities[1].params == ()


def test_type_code_mismatch_is_reported_and_parameter_type_wins() -> None:
    entities, diagnostics = _decode(build_iges(entity(116, 1, 2, 3, directory_type=110)))

    assert entities[0].type == "116"
    assert entities[0].record.entity_type == 110
    assert [item.kind for item in diagnostics] == [DiagnosticKind.TYPE_CODE_MISMATCH]
    assert diagnostics[0].sequence_number == 1


def test_d_exponent_and_strings_in_parameters() -> None:
    entities, _ = _decode(build_iges(entity(406, 2, "1.5D+01", "4Hname")))

    assert entities[0].params == (2.0, 15.0, "name")
    assert not entities[0].has_invalid_params


def test_non_numeric_parameter_marks_entity_invalid() -> None:
    entities, _ = _decode(build_iges(entity(116, 1, "oops", 3)))

    assert math.isnan(entities[0].params[1])
    assert entities[0].has_invalid_params


def test_pointer_join_uses_directory_parameter_pointer() -> None:
    text = build_iges(entity(110, *LINE_PARAMS), entity(116, 10, 20, 30))
    lines = text.splitlines()
    directory = [line for line in lines if line[72] == "D"]
    parameter = [line for line in lines if line[72] == "P"]
    others_before = [line for line in lines if line[72] in "SG"]
    terminate = [line for line in lines if line[72] == "T"]
    # move the point group ahead of the line group, keeping DE pointers in sync
    point_line = parameter[2][:64] + f"{3:>8}P{1:>7}"
    line_lines = [
        parameter[0][:64] + f"{1:>8}P{2:>7}",
        parameter[1][:64] + f"{1:>8}P{3:>7}",
    ]
    directory[0] = directory[0][:8] + f"{2:>8}" + directory[0][16:]
    directory[2] = directory[2][:8] + f"{1:>8}" + directory[2][16:]
    reordered = "\n".join([*others_before, *directory, point_line, *line_lines, *terminate])

    positional, positional_diagnostics = _decode(reordered)
    by_pointer, pointer_diagnostics = _decode(reordered, join="pointer")

    assert [item.type for item in positional] == ["116", "110"]
    assert len(positional_diagnostics) == 2
    assert pointer_diagnostics == []
    assert [item.type for item in by_pointer] == ["110", "116"]
    assert by_pointer[1].params == (10.0, 20.0, 30.0)


def test_extra_parameter_groups_are_reported() -> None:
    text = build_iges(entity(116, 1, 2, 3))
    sections = split_sections(text)
    records, _ = decode_directory(sections.directory)

    _entities, diagnostics = decode_parameters(sections.parameter + "116,4,5,6;", records)

    assert [item.kind for item in diagnostics] == [DiagnosticKind.SECTION_COUNT_MISMATCH]


def test_unknown_join_mode_is_rejected() -> None:
    with pytest.raises(ValueError, match="unsupported join mode"):
        _decode(build_iges(entity(116, 1, 2, 3)), join="label")


def test_unterminated_final_group_is_kept_and_reported() -> None:
    lines = build_iges(entity(110, *LINE_PARAMS), entity(116, 10, 20, 30)).splitlines()
    last = max(i for i, line in enumerate(lines) if line[72] == "P")
    lines[last] = lines[last][:64].replace(";", " ") + lines[last][64:]

    entities, diagnostics = _decode("\n".join(lines))

    assert entities[1].params == (10.0, 20.0, 30.0)
    assert [item.kind for item in diagnostics] == [DiagnosticKind.UNTERMINATED_PARAMETER_GROUP]
    assert diagnostics[0].sequence_number == 3


def test_overlong_string_literal_stops_at_its_own_entry() -> None:
    entities, diagnostics = _decode(build_iges(entity(406, 1, "9Hshort"), entity(116, 10, 20, 30)))

    assert entities[0].params == (1.0, "")
    assert entities[1].type == "116"
    assert entities[1].params == (10.0, 20.0, 30.0)
    assert [(item.kind, item.sequence_number) for item in diagnostics] == [
        (DiagnosticKind.HOLLERITH_DECODE_FAILURE, 1),
        (DiagnosticKind.UNTERMINATED_PARAMETER_GROUP, 1),
    ]
