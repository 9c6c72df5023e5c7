from typing import Sequence

from .convert import ConvertResult, to_dxf
from .dispatch import DispatchOutcome, EntityKind, dispatch
from .document import Document, Layout, loads, read
from .entity import Entity
from .errors import (
    Diagnostic,
    DiagnosticKind,
    IgesDecodeError,
    IgesError,
    TerminateCountMismatch,
    UnknownSectionTag,
)
from .parameters import IgesEntity
from .render import plot
from .values import decode_hollerith, decode_iges_float

__all__ = [
    "read",
    "loads",
    "Document",
    "Layout",
    "Entity",
    "IgesEntity",
    "EntityKind",
    "DispatchOutcome",
    "dispatch",
    "plot",
    "to_dxf",
    "ConvertResult",
    "decode_hollerith",
    "decode_iges_float",
    "Diagnostic",
    "DiagnosticKind",
    "IgesError",
    "IgesDecodeError",
    "UnknownSectionTag",
    "TerminateCountMismatch",
]


def main(argv: Sequence[str] | None = None) -> int:
    from eziges.cli import main as cli_main

    return cli_main(argv)
