from __future__ import annotations

import logging
import math
import re
from typing import Iterator

logger = logging.getLogger(__name__)

DEFAULT_FIELD_DELIMITER = ","
DEFAULT_RECORD_DELIMITER = ";"

_HOLLERITH_PREFIX = re.compile(r"\s*(\d+)H")

ParameterValue = float | str


def decode_hollerith(token: str | None) -> str | None:
    """Decode a counted string literal such as ``4Htest``.

    Returns ``None`` when the token has no ``H`` (not a string literal, so the
    caller applies its default) and ``""`` for ``None`` input or a malformed
    count. Never raises.
    """
    value, _ok = decode_hollerith_checked(token)
    return value


def decode_hollerith_checked(token: str | None) -> tuple[str | None, bool]:
    if token is None:
        return "", True
    marker = token.find("H")
    if marker == -1:
        return None, True
    count_text = token[:marker].strip()
    try:
        count = int(count_text)
    except ValueError:
        logger.warning("malformed hollerith count %r in %r", count_text, token)
        return "", False
    payload = token[marker + 1 : marker + 1 + count]
    if count < 0 or len(payload) < count:
        logger.warning("truncated hollerith literal %r (expected %d chars)", token, count)
        return "", False
    return payload, True


def decode_iges_float(token: str) -> float:
    try:
        return float(token.replace("D", "e").strip())
    except (AttributeError, ValueError):
        return math.nan


def parse_fixed_int(text: str) -> int | None:
    stripped = text.strip()
    if not stripped:
        return 0
    try:
        return int(stripped)
    except ValueError:
        return None


def is_hollerith_token(token: str) -> bool:
    return _HOLLERITH_PREFIX.match(token) is not None


def decode_parameter_token(token: str) -> ParameterValue:
    value, _ok = decode_parameter_token_checked(token)
    return value


def decode_parameter_token_checked(token: str) -> tuple[ParameterValue, bool]:
    """Decode one parameter token; the flag is False for a malformed string literal."""
    if is_hollerith_token(token):
        value, ok = decode_hollerith_checked(token.lstrip())
        return (value if value is not None else ""), ok
    return decode_iges_float(token), True


def iter_tokens(
    data: str,
    field_delimiter: str = DEFAULT_FIELD_DELIMITER,
    record_delimiter: str = DEFAULT_RECORD_DELIMITER,
) -> Iterator[tuple[int, str, str]]:
    """Yield ``(offset, token, terminator)`` for each free-format token.

    Counted string literals are consumed by length, so delimiters inside a
    string payload do not end the token. ``terminator`` is the delimiter that
    ended the token, or ``""`` at the end of the data.
    """
    length = len(data)
    pos = 0
    while pos < length:
        scan = pos
        match = _HOLLERITH_PREFIX.match(data, pos)
        if match is not None:
            scan = min(match.end() + int(match.group(1)), length)
        while scan < length and data[scan] != field_delimiter and data[scan] != record_delimiter:
            scan += 1
        if scan >= length:
            yield pos, data[pos:scan], ""
            return
        yield pos, data[pos:scan], data[scan]
        pos = scan + 1
        if pos == length and data[scan] == field_delimiter:
            yield pos, "", ""


def split_records(
    data: str,
    field_delimiter: str = DEFAULT_FIELD_DELIMITER,
    record_delimiter: str = DEFAULT_RECORD_DELIMITER,
    *,
    keep_tail: bool = False,
) -> list[tuple[int, list[str]]]:
    """Split free-format data into ``(offset, tokens)`` records.

    Unterminated content after the last record delimiter is dropped unless
    ``keep_tail`` is set.
    """
    records, tail = split_records_with_tail(data, field_delimiter, record_delimiter)
    if tail is not None:
        if keep_tail:
            records.append(tail)
        else:
            logger.debug("dropping unterminated trailing record %r", tail[1])
    return records


def split_records_with_tail(
    data: str,
    field_delimiter: str = DEFAULT_FIELD_DELIMITER,
    record_delimiter: str = DEFAULT_RECORD_DELIMITER,
) -> tuple[list[tuple[int, list[str]]], tuple[int, list[str]] | None]:
    """Return the terminated records and the non-blank unterminated tail, if any."""
    records: list[tuple[int, list[str]]] = []
    fields: list[str] = []
    record_start = 0
    for offset, token, terminator in iter_tokens(data, field_delimiter, record_delimiter):
        if not fields:
            record_start = offset
        fields.append(token)
        if terminator == record_delimiter:
            records.append((record_start, fields))
            fields = []
    if any(token.strip() for token in fields):
        return records, (record_start, fields)
    return records, None


def split_fields(
    data: str,
    field_delimiter: str = DEFAULT_FIELD_DELIMITER,
    record_delimiter: str = DEFAULT_RECORD_DELIMITER,
    *,
    keep_tail: bool = False,
) -> list[list[str]]:
    return [
        fields
        for _offset, fields in split_records(
            data, field_delimiter, record_delimiter, keep_tail=keep_tail
        )
    ]
