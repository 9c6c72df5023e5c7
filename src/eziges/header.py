from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .errors import Diagnostic, DiagnosticKind
from .values import (
    DEFAULT_FIELD_DELIMITER,
    DEFAULT_RECORD_DELIMITER,
    decode_hollerith_checked,
    decode_iges_float,
    is_hollerith_token,
    split_fields,
)

logger = logging.getLogger(__name__)

UNIT_NAMES = {
    1: "IN",
    2: "MM",
    4: "FT",
    5: "MI",
    6: "M",
    7: "KM",
    8: "MIL",
    9: "UM",
    10: "CM",
    11: "UIN",
}

# Global parameters 3..26, in file order.
_GLOBAL_FIELDS: tuple[tuple[str, str], ...] = (
    ("sender_product_id", "string"),
    ("file_name", "string"),
    ("native_system_id", "string"),
    ("preprocessor_version", "string"),
    ("integer_bits", "int"),
    ("single_max_power", "int"),
    ("single_significant_digits", "int"),
    ("double_max_power", "int"),
    ("double_significant_digits", "int"),
    ("receiver_product_id", "string"),
    ("scale", "real"),
    ("unit_flag", "int"),
    ("unit_name", "string"),
    ("line_weight_gradations", "int"),
    ("max_line_weight", "real"),
    ("date_created", "string"),
    ("resolution", "real"),
    ("max_coordinate", "real"),
    ("author", "string"),
    ("organization", "string"),
    ("iges_version", "int"),
    ("drafting_standard", "int"),
    ("date_modified", "string"),
    ("application_protocol", "string"),
)


@dataclass(frozen=True)
class GlobalParameters:
    field_delimiter: str = DEFAULT_FIELD_DELIMITER
    record_delimiter: str = DEFAULT_RECORD_DELIMITER
    sender_product_id: str = ""
    file_name: str = ""
    native_system_id: str = ""
    preprocessor_version: str = ""
    integer_bits: int | None = None
    single_max_power: int | None = None
    single_significant_digits: int | None = None
    double_max_power: int | None = None
    double_significant_digits: int | None = None
    receiver_product_id: str = ""
    scale: float | None = None
    unit_flag: int | None = None
    unit_name: str = ""
    line_weight_gradations: int | None = None
    max_line_weight: float | None = None
    date_created: str = ""
    resolution: float | None = None
    max_coordinate: float | None = None
    author: str = ""
    organization: str = ""
    iges_version: int | None = None
    drafting_standard: int | None = None
    date_modified: str = ""
    application_protocol: str = ""

    @property
    def unit(self) -> str:
        if self.unit_name:
            return self.unit_name
        return UNIT_NAMES.get(self.unit_flag or 0, "")


def parse_global(data: str) -> tuple[GlobalParameters, list[Diagnostic]]:
    diagnostics: list[Diagnostic] = []
    field_delimiter, pos = _read_delimiter(data, 0, DEFAULT_FIELD_DELIMITER, None, diagnostics)
    record_delimiter, pos = _read_delimiter(
        data, pos, DEFAULT_RECORD_DELIMITER, field_delimiter, diagnostics
    )
    rest = data[pos:]
    if rest.startswith(record_delimiter):
        fields: list[str] = []
    else:
        records = split_fields(rest, field_delimiter, record_delimiter, keep_tail=True)
        fields = records[0] if records else []

    values: dict[str, object] = {}
    for index, (name, kind) in enumerate(_GLOBAL_FIELDS):
        token = fields[index] if index < len(fields) else ""
        if kind == "string":
            values[name] = _string_field(name, token, diagnostics)
        else:
            values[name] = _number_field(name, token, kind, diagnostics)
    if len(fields) > len(_GLOBAL_FIELDS):
        logger.debug("ignoring %d extra global fields", len(fields) - len(_GLOBAL_FIELDS))

    logger.debug("global delimiters: field=%r record=%r", field_delimiter, record_delimiter)
    return (
        GlobalParameters(
            field_delimiter=field_delimiter,
            record_delimiter=record_delimiter,
            **values,
        ),
        diagnostics,
    )


def _read_delimiter(
    data: str,
    pos: int,
    default: str,
    field_delimiter: str | None,
    diagnostics: list[Diagnostic],
) -> tuple[str, int]:
    """Read one of the two leading delimiter fields, returning it and the next offset."""
    separator = field_delimiter if field_delimiter is not None else default
    if pos >= len(data):
        return default, pos
    if data[pos] == separator:
        return default, pos + 1
    if not is_hollerith_token(data[pos:]):
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.HOLLERITH_DECODE_FAILURE,
                f"expected a delimiter literal at global offset {pos}, found {data[pos:pos + 8]!r}",
            )
        )
        return default, pos
    marker = data.index("H", pos)
    literal_end = marker + 1 + int(data[pos:marker])
    value, ok = decode_hollerith_checked(data[pos:literal_end])
    if not ok or value is None or len(value) != 1:
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.HOLLERITH_DECODE_FAILURE,
                f"malformed delimiter literal {data[pos:literal_end]!r}",
            )
        )
        return default, literal_end
    delimiter = value
    next_separator = field_delimiter if field_delimiter is not None else delimiter
    if literal_end < len(data) and data[literal_end] == next_separator:
        literal_end += 1
    return delimiter, literal_end


def _string_field(name: str, token: str, diagnostics: list[Diagnostic]) -> str:
    if not token.strip():
        return ""
    value, ok = decode_hollerith_checked(token.strip())
    if value is None or not ok:
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.HOLLERITH_DECODE_FAILURE,
                f"global field {name} is not a string literal: {token!r}",
            )
        )
        return ""
    return value


def _number_field(
    name: str, token: str, kind: str, diagnostics: list[Diagnostic]
) -> int | float | None:
    if not token.strip():
        return None
    value = decode_iges_float(token)
    if math.isnan(value) or (kind == "int" and not value.is_integer()):
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.NUMERIC_FIELD_DECODE_FAILURE,
                f"global field {name} is not a valid {kind}: {token!r}",
            )
        )
        return None
    if kind == "int":
        return int(value)
    return value
