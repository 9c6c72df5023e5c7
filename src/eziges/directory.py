from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import Diagnostic, DiagnosticKind
from .values import parse_fixed_int

logger = logging.getLogger(__name__)

RECORD_WIDTH = 160

# (field, offset, width) for the integer columns of one 160-column entry
_INT_FIELDS: tuple[tuple[str, int, int], ...] = (
    ("entity_type", 0, 8),
    ("entity_index", 8, 8),
    ("iges_version", 16, 8),
    ("line_type", 24, 8),
    ("level", 32, 8),
    ("view", 40, 8),
    ("trans_matrix", 48, 8),
    ("label_disp", 56, 8),
    ("sequence_number", 73, 7),
    ("line_width", 88, 8),
    ("color", 96, 8),
    ("param_line", 104, 8),
    ("form_number", 112, 8),
    ("entity_sub", 144, 8),
)


@dataclass(frozen=True)
class DirectoryRecord:
    entity_type: int | None
    entity_index: int | None
    iges_version: int | None
    line_type: int | None
    level: int | None
    view: int | None
    trans_matrix: int | None
    label_disp: int | None
    status: str
    sequence_number: int | None
    line_width: int | None
    color: int | None
    param_line: int | None
    form_number: int | None
    entity_name: str
    entity_sub: int | None

    @property
    def parameter_pointer(self) -> int | None:
        return self.entity_index


def decode_directory(data: str) -> tuple[tuple[DirectoryRecord, ...], list[Diagnostic]]:
    records: list[DirectoryRecord] = []
    diagnostics: list[Diagnostic] = []
    for offset in range(0, len(data), RECORD_WIDTH):
        item = data[offset : offset + RECORD_WIDTH].ljust(RECORD_WIDTH)
        values: dict[str, int | None] = {}
        bad_fields: list[str] = []
        for name, start, width in _INT_FIELDS:
            value = parse_fixed_int(item[start : start + width])
            if value is None:
                bad_fields.append(name)
            values[name] = value
        record = DirectoryRecord(
            status=item[64:72],
            entity_name=item[136:144].strip(),
            **values,
        )
        if bad_fields:
            sequence = record.sequence_number
            if sequence is None:
                sequence = 2 * len(records) + 1
            message = f"non-numeric directory columns: {', '.join(bad_fields)}"
            logger.warning("DE %s: %s", sequence, message)
            diagnostics.append(
                Diagnostic(DiagnosticKind.NUMERIC_FIELD_DECODE_FAILURE, message, sequence)
            )
        records.append(record)
    logger.debug("decoded %d directory entries", len(records))
    return tuple(records), diagnostics
