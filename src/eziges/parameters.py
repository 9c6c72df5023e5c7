from __future__ import annotations

import logging
import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Sequence

from .directory import DirectoryRecord
from .errors import Diagnostic, DiagnosticKind
from .values import (
    DEFAULT_FIELD_DELIMITER,
    DEFAULT_RECORD_DELIMITER,
    ParameterValue,
    decode_parameter_token_checked,
    split_records_with_tail,
)

logger = logging.getLogger(__name__)

JOIN_MODES = ("position", "pointer")


@dataclass(frozen=True)
class IgesEntity:
    type: str
    record: DirectoryRecord
    params: tuple[ParameterValue, ...] = ()

    @property
    def sequence_number(self) -> int | None:
        return self.record.sequence_number

    @property
    def form(self) -> int:
        return self.record.form_number or 0

    @property
    def has_invalid_params(self) -> bool:
        return any(isinstance(value, float) and math.isnan(value) for value in self.params)


@dataclass(frozen=True)
class _ParameterGroup:
    line: int
    type: str
    params: tuple[ParameterValue, ...]
    owner: int | None = None
    bad_strings: tuple[str, ...] = ()
    terminated: bool = True


def decode_parameters(
    data: str,
    records: Sequence[DirectoryRecord],
    *,
    line_offsets: Sequence[int] = (),
    line_owners: Sequence[int | None] = (),
    field_delimiter: str = DEFAULT_FIELD_DELIMITER,
    record_delimiter: str = DEFAULT_RECORD_DELIMITER,
    join: str = "position",
) -> tuple[tuple[IgesEntity, ...], list[Diagnostic]]:
    """Decode Parameter data groups and join them to their directory entries.

    With ``line_owners`` (the DE pointer of every Parameter line) each group is
    tokenized within the lines of its own entry, so a malformed string literal
    cannot run into the next entry's parameters.
    """
    if join not in JOIN_MODES:
        raise ValueError(f"unsupported join mode: {join!r} (expected one of {JOIN_MODES})")

    groups = _parameter_groups(
        data, line_offsets, line_owners, field_delimiter, record_delimiter
    )
    logger.debug("decoded %d parameter groups for %d directory entries", len(groups), len(records))

    diagnostics: list[Diagnostic] = []
    for group in groups:
        for token in group.bad_strings:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.HOLLERITH_DECODE_FAILURE,
                    f"malformed string literal {token!r} in type {group.type} parameters",
                    group.owner,
                )
            )
        if not group.terminated:
            logger.warning("parameter group on line %d is not terminated", group.line)
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.UNTERMINATED_PARAMETER_GROUP,
                    f"type {group.type} group on parameter line {group.line} has no "
                    f"{record_delimiter!r} terminator",
                    group.owner,
                )
            )

    if join == "pointer":
        by_line = {group.line: group for group in groups}
        matched = [by_line.get(record.entity_index or 0) for record in records]
    else:
        matched = [groups[i] if i < len(groups) else None for i in range(len(records))]
        if len(groups) > len(records):
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.SECTION_COUNT_MISMATCH,
                    f"{len(groups) - len(records)} parameter groups have no directory entry",
                )
            )

    entities: list[IgesEntity] = []
    for record, group in zip(records, matched):
        if group is None:
            entities.append(IgesEntity(type=str(record.entity_type), record=record))
            continue
        if record.entity_type is not None and str(record.entity_type) != group.type:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.TYPE_CODE_MISMATCH,
                    f"directory type {record.entity_type} but parameter type {group.type!r}",
                    record.sequence_number,
                )
            )
        entities.append(IgesEntity(type=group.type, record=record, params=group.params))
    return tuple(entities), diagnostics


def _parameter_groups(
    data: str,
    line_offsets: Sequence[int],
    line_owners: Sequence[int | None],
    field_delimiter: str,
    record_delimiter: str,
) -> list[_ParameterGroup]:
    groups: list[_ParameterGroup] = []
    for start, stop, owner in _owner_spans(len(data), line_offsets, line_owners):
        records, tail = split_records_with_tail(data[start:stop], field_delimiter, record_delimiter)
        if tail is not None:
            records.append(tail)
        for index, (offset, tokens) in enumerate(records):
            values: list[ParameterValue] = []
            bad_strings: list[str] = []
            for token in tokens[1:]:
                value, ok = decode_parameter_token_checked(token)
                values.append(value)
                if not ok:
                    bad_strings.append(token)
            groups.append(
                _ParameterGroup(
                    line=bisect_right(line_offsets, start + offset)
                    if line_offsets
                    else len(groups) + 1,
                    type=tokens[0].strip(),
                    params=tuple(values),
                    owner=owner,
                    bad_strings=tuple(bad_strings),
                    terminated=tail is None or index < len(records) - 1,
                )
            )
    return groups


def _owner_spans(
    size: int, line_offsets: Sequence[int], line_owners: Sequence[int | None]
) -> list[tuple[int, int, int | None]]:
    """Buffer spans ``(start, stop, owner)`` of consecutive lines owned by one entry."""
    if not line_offsets or len(line_owners) != len(line_offsets):
        return [(0, size, None)]
    spans: list[tuple[int, int, int | None]] = []
    start = 0
    for index in range(1, len(line_offsets)):
        if line_owners[index] != line_owners[index - 1]:
            spans.append((start, line_offsets[index], line_owners[index - 1]))
            start = line_offsets[index]
    spans.append((start, size, line_owners[-1]))
    return spans
