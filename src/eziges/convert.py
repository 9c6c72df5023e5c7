from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from .document import Document, Layout, read
from .entity import Entity

logger = logging.getLogger(__name__)

# IGES global unit flag -> DXF $INSUNITS code
IGES_UNITS_TO_INSUNITS = {1: 1, 2: 4, 4: 2, 5: 3, 6: 6, 7: 7, 8: 9, 9: 13, 10: 5, 11: 8}

# IGES line font pattern -> linetype created by ezdxf.new(setup=True); 1 is solid
IGES_LINE_FONTS = {2: "DASHED", 3: "PHANTOM", 4: "CENTER", 5: "DOT"}


@dataclass(frozen=True)
class ConvertResult:
    source_path: str
    output_path: str
    units: str
    total_entities: int
    written_entities: int
    skipped_entities: int
    skipped_by_type: dict[str, int]


def to_dxf(
    source: str | Document | Layout,
    output_path: str,
    *,
    types: str | Iterable[str] | None = None,
    dxf_version: str = "R2010",
    strict: bool = False,
) -> ConvertResult:
    """Write the buildable entities of an IGES model to a DXF file.

    Placeholders for structural entity types (matrices, surfaces, groups) have
    no DXF counterpart; they are counted in ``skipped_by_type`` and make
    ``strict=True`` fail.
    """
    ezdxf = _require_ezdxf()
    source_path, layout = _resolve_layout(source)
    header = layout.doc.header

    dxf_doc = ezdxf.new(dxfversion=dxf_version, setup=True)
    insunits = IGES_UNITS_TO_INSUNITS.get(header.unit_flag or 0)
    if insunits is not None:
        dxf_doc.header["$INSUNITS"] = insunits
    modelspace = dxf_doc.modelspace()

    written = 0
    skipped: Counter[str] = Counter()
    for entity in layout.query(types):
        if _write_entity(modelspace, entity):
            written += 1
        else:
            skipped[entity.dxftype] += 1

    skipped_total = sum(skipped.values())
    if strict and skipped_total:
        summary = ", ".join(f"{dxftype}:{count}" for dxftype, count in sorted(skipped.items()))
        raise ValueError(f"failed to convert {skipped_total} entities ({summary})")

    out_path = Path(output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    dxf_doc.saveas(str(out_path))
    logger.debug("wrote %d entities to %s (%d skipped)", written, out_path, skipped_total)

    return ConvertResult(
        source_path=source_path,
        output_path=str(out_path),
        units=header.unit,
        total_entities=written + skipped_total,
        written_entities=written,
        skipped_entities=skipped_total,
        skipped_by_type=dict(sorted(skipped.items())),
    )


def _require_ezdxf():
    try:
        import ezdxf
    except Exception as exc:
        raise ImportError(
            "ezdxf is required for IGES->DXF conversion. "
            'Install it with `pip install "eziges[dxf]"`.'
        ) from exc
    return ezdxf


def _resolve_layout(source: str | Document | Layout) -> tuple[str, Layout]:
    if isinstance(source, Layout):
        return source.doc.path or "<memory>", source
    if isinstance(source, Document):
        return source.path or "<memory>", source.modelspace()
    doc = read(source)
    return str(source), doc.modelspace()


def _write_entity(modelspace: Any, entity: Entity) -> bool:
    writer = _WRITERS.get(entity.dxftype)
    if writer is None or not entity.constructed:
        return False
    try:
        writer(modelspace, entity.dxf, _entity_dxfattribs(entity.dxf))
    except Exception as exc:
        logger.debug("failed to write %s DE %s: %s", entity.dxftype, entity.handle, exc)
        return False
    return True


def _add_line(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> None:
    modelspace.add_line(_point3(dxf["start"]), _point3(dxf["end"]), dxfattribs=dxfattribs)


def _add_point(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> None:
    modelspace.add_point(_point3(dxf["location"]), dxfattribs=dxfattribs)


def _add_arc(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> None:
    # IGES arcs run counter-clockwise from start to end, as DXF arcs do
    modelspace.add_arc(
        _point3(dxf["center"]),
        float(dxf["radius"]),
        float(dxf["start_angle"]),
        float(dxf["end_angle"]),
        dxfattribs=dxfattribs,
    )


def _add_circle(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> None:
    modelspace.add_circle(_point3(dxf["center"]), float(dxf["radius"]), dxfattribs=dxfattribs)


def _add_polyline(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> None:
    points = [_point3(point) for point in dxf.get("points", [])]
    if len(points) < 2:
        raise ValueError(f"polyline needs at least 2 points, got {len(points)}")
    modelspace.add_polyline3d(points, close=bool(dxf.get("closed")), dxfattribs=dxfattribs)


def _add_spline(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> None:
    control_points = [_point3(point) for point in dxf["control_points"]]
    degree = int(dxf["degree"])
    knots = [float(value) for value in dxf["knots"]]
    if dxf.get("rational"):
        modelspace.add_rational_spline(
            control_points=control_points,
            weights=[float(value) for value in dxf["weights"]],
            degree=degree,
            knots=knots,
            dxfattribs=dxfattribs,
        )
        return
    modelspace.add_open_spline(
        control_points=control_points,
        degree=degree,
        knots=knots,
        dxfattribs=dxfattribs,
    )


def _add_text(modelspace: Any, dxf: dict[str, Any], dxfattribs: dict[str, Any]) -> None:
    text = str(dxf.get("text") or "")
    if not text:
        raise ValueError("empty note text")
    attribs = {**dxfattribs, "insert": _point3(dxf["insert"])}
    height = dxf.get("height")
    if height:
        attribs["height"] = float(height)
    if dxf.get("rotation"):
        attribs["rotation"] = float(dxf["rotation"])
    modelspace.add_text(text, dxfattribs=attribs)


_WRITERS: dict[str, Callable[[Any, dict[str, Any], dict[str, Any]], None]] = {
    "LINE": _add_line,
    "POINT": _add_point,
    "ARC": _add_arc,
    "CIRCLE": _add_circle,
    "POLYLINE": _add_polyline,
    "SPLINE": _add_spline,
    "TEXT": _add_text,
}


def _entity_dxfattribs(dxf: dict[str, Any]) -> dict[str, Any]:
    attribs: dict[str, Any] = {}
    color = dxf.get("color_index")
    if isinstance(color, int) and 1 <= color <= 255:
        attribs["color"] = color
    level = dxf.get("level")
    if isinstance(level, int) and level > 0:
        attribs["layer"] = f"LEVEL_{level}"
    linetype = IGES_LINE_FONTS.get(dxf.get("line_font") or 0)
    if linetype is not None:
        attribs["linetype"] = linetype
    return attribs


def _point3(value: Any) -> tuple[float, float, float]:
    x, y, z = value
    return (float(x), float(y), float(z))
