from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .errors import UnknownSectionTag
from .values import parse_fixed_int

logger = logging.getLogger(__name__)

LINE_WIDTH = 80
TAG_COLUMN = 72
TEXT_WIDTH = 72
PARAMETER_TEXT_WIDTH = 64
SECTION_TAGS = ("S", "G", "D", "P", "T")


@dataclass(frozen=True)
class Sections:
    start: str
    global_: str
    directory: str
    parameter: str
    terminate: str
    line_counts: Mapping[str, int] = field(default_factory=dict)
    # buffer offset where each Parameter line's content begins, in file order
    parameter_line_offsets: tuple[int, ...] = ()
    # owning DE sequence number from columns 65-72 of each Parameter line
    parameter_line_owners: tuple[int | None, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "line_counts", MappingProxyType(dict(self.line_counts)))


def split_sections(text: str) -> Sections:
    buffers: dict[str, list[str]] = {tag: [] for tag in SECTION_TAGS}
    counts = {tag: 0 for tag in SECTION_TAGS}
    parameter_offsets: list[int] = []
    parameter_owners: list[int | None] = []
    parameter_size = 0

    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        raw_line = raw_line.rstrip("\r")
        if not raw_line.strip():
            continue
        tag = raw_line[TAG_COLUMN] if len(raw_line) > TAG_COLUMN else ""
        line = raw_line[:LINE_WIDTH]
        if tag in ("S", "G", "T"):
            buffers[tag].append(line[:TEXT_WIDTH].strip())
        elif tag == "D":
            buffers[tag].append(line.ljust(LINE_WIDTH))
        elif tag == "P":
            content = line[:PARAMETER_TEXT_WIDTH].strip()
            parameter_offsets.append(parameter_size)
            parameter_owners.append(parse_fixed_int(line[PARAMETER_TEXT_WIDTH:TAG_COLUMN]))
            parameter_size += len(content)
            buffers[tag].append(content)
        else:
            raise UnknownSectionTag(tag, line_number)
        counts[tag] += 1

    logger.debug("section line counts: %s", counts)
    return Sections(
        start="".join(buffers["S"]),
        global_="".join(buffers["G"]),
        directory="".join(buffers["D"]),
        parameter="".join(buffers["P"]),
        terminate="".join(buffers["T"]),
        line_counts=counts,
        parameter_line_offsets=tuple(parameter_offsets),
        parameter_line_owners=tuple(parameter_owners),
    )
