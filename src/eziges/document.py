from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from .directory import DirectoryRecord, decode_directory
from .dispatch import DispatchOutcome, EntityKind, dispatch_all
from .entity import Entity
from .errors import Diagnostic, IgesDecodeError
from .header import GlobalParameters, parse_global
from .parameters import IgesEntity, decode_parameters
from .sections import split_sections
from .terminate import TerminateSummary, parse_terminate, validate_terminate

logger = logging.getLogger(__name__)

SUPPORTED_ENTITY_TYPES = (
    "LINE",
    "POINT",
    "ARC",
    "CIRCLE",
    "POLYLINE",
    "SPLINE",
    "TEXT",
)
PLACEHOLDER_ENTITY_TYPES = tuple(
    kind.name
    for kind in EntityKind
    if kind
    not in {
        EntityKind.CIRCULAR_ARC,
        EntityKind.LINE,
        EntityKind.POINT,
        EntityKind.RATIONAL_BSPLINE_CURVE,
    }
)

TYPE_ALIASES = {
    "CIRCULAR_ARC": "ARC",
    "RATIONAL_BSPLINE_CURVE": "SPLINE",
    "NOTE": "TEXT",
    "100": "ARC",
    "110": "LINE",
    "116": "POINT",
    "126": "SPLINE",
}


def read(path: str | Path, *, join: str = "position", strict: bool = False) -> "Document":
    file_path = Path(path)
    # IGES is 7-bit ASCII; latin-1 keeps stray 8-bit bytes one character wide
    text = file_path.read_text(encoding="latin-1")
    return loads(text, path=str(file_path), join=join, strict=strict)


def loads(
    text: str,
    *,
    path: str | None = None,
    join: str = "position",
    strict: bool = False,
) -> "Document":
    sections = split_sections(text)
    header, diagnostics = parse_global(sections.global_)
    records, directory_diagnostics = decode_directory(sections.directory)
    entities, parameter_diagnostics = decode_parameters(
        sections.parameter,
        records,
        line_offsets=sections.parameter_line_offsets,
        line_owners=sections.parameter_line_owners,
        field_delimiter=header.field_delimiter,
        record_delimiter=header.record_delimiter,
        join=join,
    )
    terminate = parse_terminate(sections.terminate)
    terminate_diagnostics = validate_terminate(terminate, len(records), sections.line_counts)
    outcomes = dispatch_all(entities)

    diagnostics.extend(directory_diagnostics)
    diagnostics.extend(parameter_diagnostics)
    diagnostics.extend(terminate_diagnostics)
    for outcome in outcomes:
        diagnostics.extend(outcome.diagnostics)
    logger.debug(
        "decoded %d entities (%d constructed, %d diagnostics)",
        len(entities),
        sum(1 for outcome in outcomes if outcome.constructed),
        len(diagnostics),
    )
    if strict and diagnostics:
        raise IgesDecodeError(tuple(diagnostics))

    return Document(
        path=path,
        start=sections.start,
        header=header,
        terminate=terminate,
        records=records,
        entities=entities,
        outcomes=outcomes,
        diagnostics=tuple(diagnostics),
    )


@dataclass(frozen=True)
class Document:
    path: str | None
    start: str
    header: GlobalParameters
    terminate: TerminateSummary
    records: tuple[DirectoryRecord, ...]
    entities: tuple[IgesEntity, ...]
    outcomes: tuple[DispatchOutcome, ...]
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def unhandled(self) -> tuple[IgesEntity, ...]:
        return tuple(outcome.entity for outcome in self.outcomes if not outcome.handled)

    def get_by_sequence(self, sequence_number: int) -> IgesEntity | None:
        for entity in self.entities:
            if entity.sequence_number == sequence_number:
                return entity
        return None

    def modelspace(self) -> "Layout":
        return Layout(self, "MODELSPACE")

    def plot(self, *args, **kwargs):
        from .render import plot

        return plot(self, *args, **kwargs)

    def export_dxf(self, output_path: str, **kwargs):
        from .convert import to_dxf

        return to_dxf(self, output_path, **kwargs)


@dataclass(frozen=True)
class Layout:
    doc: Document
    name: str

    def iter_entities(self, types: str | Iterable[str] | None = None) -> Iterator[Entity]:
        return self.query(types)

    def query(self, types: str | Iterable[str] | None = None) -> Iterator[Entity]:
        selected = set(_normalize_types(types))
        for outcome in self.doc.outcomes:
            geometry = outcome.geometry
            if geometry is not None and geometry.dxftype in selected:
                yield geometry

    def plot(self, *args, **kwargs):
        from .render import plot

        return plot(self, *args, **kwargs)

    def export_dxf(self, output_path: str, **kwargs):
        from .convert import to_dxf

        return to_dxf(self, output_path, **kwargs)


def _normalize_types(types: str | Iterable[str] | None) -> list[str]:
    candidate_types = [*SUPPORTED_ENTITY_TYPES, *PLACEHOLDER_ENTITY_TYPES]
    if types is None:
        return candidate_types
    if isinstance(types, str):
        tokens = re.split(r"[,\s]+", types.strip())
    else:
        tokens = [str(token) for token in types]

    normalized = [token.strip().upper() for token in tokens if token and token.strip()]
    normalized = [TYPE_ALIASES.get(token, token) for token in normalized]
    if not normalized:
        return candidate_types

    if any(token in {"*", "ALL"} for token in normalized):
        return candidate_types

    selected: list[str] = []
    seen = set()
    for token in normalized:
        if token.isdigit():
            kind = EntityKind.from_code(token)
            if kind is None:
                continue
            token = kind.name
        if any(ch in token for ch in "*?[]"):
            matches = [name for name in candidate_types if fnmatch.fnmatchcase(name, token)]
        elif token in candidate_types:
            matches = [token]
        else:
            matches = []
        for name in matches:
            if name not in seen:
                seen.add(name)
                selected.append(name)
    return selected
