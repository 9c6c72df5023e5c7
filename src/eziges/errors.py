from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IgesError(ValueError):
    pass


class UnknownSectionTag(IgesError):
    def __init__(self, tag: str, line_number: int) -> None:
        self.tag = tag
        self.line_number = line_number
        shown = repr(tag) if tag else "<missing>"
        super().__init__(f"unknown IGES section type {shown} at line {line_number}")


class TerminateCountMismatch(IgesError):
    def __init__(self, declared: int | None, decoded: int) -> None:
        self.declared = declared
        self.decoded = decoded
        super().__init__(
            f"inconsistent directory section: terminate declares {declared} lines, "
            f"decoded {decoded} entries ({decoded * 2} lines)"
        )


class IgesDecodeError(IgesError):
    def __init__(self, diagnostics: tuple["Diagnostic", ...]) -> None:
        self.diagnostics = diagnostics
        summary = "; ".join(str(item) for item in diagnostics[:5])
        if len(diagnostics) > 5:
            summary += f"; ... ({len(diagnostics) - 5} more)"
        super().__init__(f"{len(diagnostics)} decode problems: {summary}")


class DiagnosticKind(str, Enum):
    HOLLERITH_DECODE_FAILURE = "hollerith-decode-failure"
    NUMERIC_FIELD_DECODE_FAILURE = "numeric-field-decode-failure"
    UNRECOGNIZED_ENTITY_TYPE = "unrecognized-entity-type"
    PARAMETER_ARITY_MISMATCH = "parameter-arity-mismatch"
    TYPE_CODE_MISMATCH = "type-code-mismatch"
    SECTION_COUNT_MISMATCH = "section-count-mismatch"
    UNTERMINATED_PARAMETER_GROUP = "unterminated-parameter-group"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    sequence_number: int | None = None

    def __str__(self) -> str:
        if self.sequence_number is None:
            return f"{self.kind.value}: {self.message}"
        return f"{self.kind.value}[DE {self.sequence_number}]: {self.message}"
