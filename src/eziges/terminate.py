from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from .errors import Diagnostic, DiagnosticKind, TerminateCountMismatch
from .values import parse_fixed_int

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerminateSummary:
    start_lines: int | None
    global_lines: int | None
    directory_lines: int | None
    parameter_lines: int | None

    @property
    def directory_entities(self) -> float | None:
        if self.directory_lines is None:
            return None
        return self.directory_lines / 2


def parse_terminate(data: str) -> TerminateSummary:
    return TerminateSummary(
        start_lines=parse_fixed_int(data[1:8]),
        global_lines=parse_fixed_int(data[9:16]),
        directory_lines=parse_fixed_int(data[17:24]),
        parameter_lines=parse_fixed_int(data[25:32]),
    )


def validate_terminate(
    summary: TerminateSummary,
    entity_count: int,
    line_counts: Mapping[str, int] | None = None,
) -> list[Diagnostic]:
    if summary.directory_entities != entity_count:
        raise TerminateCountMismatch(summary.directory_lines, entity_count)

    diagnostics: list[Diagnostic] = []
    if line_counts is None:
        return diagnostics
    for tag, declared in (
        ("S", summary.start_lines),
        ("G", summary.global_lines),
        ("P", summary.parameter_lines),
    ):
        actual = line_counts.get(tag, 0)
        if declared != actual:
            message = f"terminate declares {declared} {tag} lines, found {actual}"
            logger.warning(message)
            diagnostics.append(Diagnostic(DiagnosticKind.SECTION_COUNT_MISMATCH, message))
    return diagnostics
