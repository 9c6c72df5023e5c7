from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence


def hollerith(value: str) -> str:
    return f"{len(value)}H{value}"


@dataclass
class EntitySpec:
    type_code: int
    params: list[str]
    form: int = 0
    color: int = 0
    label: str = ""
    directory_type: int | None = None


def entity(type_code: int, *params: object, **kwargs) -> EntitySpec:
    return EntitySpec(type_code, [str(p) for p in params], **kwargs)


def global_fields(
    field_delimiter: str = ",",
    record_delimiter: str = ";",
    file_name: str = "test.igs",
) -> list[str]:
    return [
        hollerith(field_delimiter),
        hollerith(record_delimiter),
        "6Heziges",
        hollerith(file_name),
        "6Heziges",
        "5H0.1.0",
        "32",
        "38",
        "6",
        "308",
        "15",
        "6Heziges",
        "1.0",
        "2",
        "2HMM",
        "1",
        "1.0",
        "15H20261018.120000",
        "1.0D-06",
        "1000.0",
        "6Htester",
        "4Hacme",
        "11",
        "0",
        "15H20261018.120000",
    ]


def _wrap(tokens: Sequence[str], width: int, fd: str, rd: str) -> list[str]:
    lines = [tokens[0]]
    for token in tokens[1:]:
        if len(lines[-1]) + len(token) + 2 <= width:
            lines[-1] += fd + token
        else:
            lines[-1] += fd
            lines.append(token)
    lines[-1] += rd
    return lines


@dataclass
class IgesBuilder:
    field_delimiter: str = ","
    record_delimiter: str = ";"
    start_comment: str = "eziges test file"
    file_name: str = "test.igs"
    entities: list[EntitySpec] = field(default_factory=list)

    def add(self, spec: EntitySpec) -> int:
        self.entities.append(spec)
        return 2 * len(self.entities) - 1

    def lines(self, *, directory_lines: int | None = None) -> list[str]:
        fd, rd = self.field_delimiter, self.record_delimiter
        start = [f"{self.start_comment:<72}S{1:>7}"]

        global_text = fd.join(global_fields(fd, rd, self.file_name)) + rd
        chunks = [global_text[i : i + 72] for i in range(0, len(global_text), 72)]
        global_ = [f"{chunk:<72}G{n:>7}" for n, chunk in enumerate(chunks, start=1)]

        directory: list[str] = []
        parameter: list[str] = []
        for index, spec in enumerate(self.entities):
            de = 2 * index + 1
            pline = len(parameter) + 1
            tokens = [str(spec.type_code), *spec.params]
            plines = _wrap(tokens, 64, fd, rd)
            for content in plines:
                parameter.append(f"{content:<64}{de:>8}P{len(parameter) + 1:>7}")
            dtype = spec.directory_type if spec.directory_type is not None else spec.type_code
            directory.append(
                f"{dtype:>8}{pline:>8}{0:>8}{0:>8}{0:>8}{0:>8}{0:>8}{0:>8}{'00000000':>8}D{de:>7}"
            )
            directory.append(
                f"{dtype:>8}{0:>8}{spec.color:>8}{len(plines):>8}{spec.form:>8}"
                f"{'':>8}{'':>8}{spec.label:>8}{0:>8}D{de + 1:>7}"
            )

        d_count = len(directory) if directory_lines is None else directory_lines
        counts = f"S{len(start):>7}G{len(global_):>7}D{d_count:>7}P{len(parameter):>7}"
        terminate = [f"{counts:<72}T{1:>7}"]
        return [*start, *global_, *directory, *parameter, *terminate]

    def text(self, **kwargs) -> str:
        return "\n".join(self.lines(**kwargs)) + "\n"

    def write(self, path: Path, **kwargs) -> Path:
        path.write_text(self.text(**kwargs), encoding="latin-1")
        return path


def build_iges(*specs: EntitySpec, **kwargs) -> str:
    directory_lines = kwargs.pop("directory_lines", None)
    builder = IgesBuilder(**kwargs)
    for spec in specs:
        builder.add(spec)
    return builder.text(directory_lines=directory_lines)


LINE_PARAMS = (
    "-30.13380241394043",
    "13.59160041809082",
    "0",
    "31.40465545654297",
    "42.65143585205078",
    "0",
)


def line_iges() -> str:
    return build_iges(entity(110, *LINE_PARAMS))


def point_iges() -> str:
    return build_iges(entity(116, 10, 20, 30))
