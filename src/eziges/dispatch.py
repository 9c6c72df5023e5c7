from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Sequence

from .entity import Entity
from .errors import Diagnostic, DiagnosticKind
from .parameters import IgesEntity
from .values import ParameterValue

logger = logging.getLogger(__name__)


class EntityKind(IntEnum):
    CIRCULAR_ARC = 100
    COMPOSITE_CURVE = 102
    COPIOUS_DATA = 106
    PLANE = 108
    LINE = 110
    POINT = 116
    SURFACE_OF_REVOLUTION = 120
    TABULATED_CYLINDER = 122
    TRANSFORMATION_MATRIX = 124
    RATIONAL_BSPLINE_CURVE = 126
    RATIONAL_BSPLINE_SURFACE = 128
    CURVE_ON_PARAMETRIC_SURFACE = 142
    TRIMMED_PARAMETRIC_SURFACE = 144
    GENERAL_NOTE = 212
    LEADER = 214
    LINEAR_DIMENSION = 216
    COLOR_DEFINITION = 314
    ASSOCIATIVITY_INSTANCE = 402
    PROPERTY = 406

    @classmethod
    def from_code(cls, code: str | int | None) -> "EntityKind | None":
        try:
            return cls(int(str(code).strip()))
        except ValueError:
            return None


# IGES color numbers 1..8 mapped to AutoCAD color indices.
IGES_COLOR_TO_ACI = {1: 7, 2: 1, 3: 3, 4: 5, 5: 2, 6: 6, 7: 4, 8: 7}

# copious data forms drawn as connected polylines
_PATH_FORMS = {11: False, 12: False, 13: False, 63: True}
_GROUP_FORMS = {1, 7, 14, 15}


class ParameterShapeError(ValueError):
    pass


@dataclass(frozen=True)
class DispatchOutcome:
    entity: IgesEntity
    kind: EntityKind | None
    geometry: Entity | None = None
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def handled(self) -> bool:
        return self.kind is not None

    @property
    def constructed(self) -> bool:
        return self.geometry is not None and self.geometry.constructed


def dispatch(entity: IgesEntity) -> DispatchOutcome:
    sequence = entity.sequence_number
    kind = EntityKind.from_code(entity.type)
    if kind is None:
        logger.info("unrecognized IGES entity type %s (DE %s)", entity.type, sequence)
        return DispatchOutcome(
            entity,
            None,
            diagnostics=(
                Diagnostic(
                    DiagnosticKind.UNRECOGNIZED_ENTITY_TYPE,
                    f"no handler for entity type {entity.type!r}",
                    sequence,
                ),
            ),
        )
    if entity.has_invalid_params:
        logger.warning("DE %s: type %s has non-numeric parameters", sequence, entity.type)
        return DispatchOutcome(
            entity,
            kind,
            diagnostics=(
                Diagnostic(
                    DiagnosticKind.NUMERIC_FIELD_DECODE_FAILURE,
                    f"type {entity.type} has parameters that are not numbers",
                    sequence,
                ),
            ),
        )
    try:
        geometry = HANDLERS[kind](entity)
    except ParameterShapeError as exc:
        logger.warning("DE %s: %s", sequence, exc)
        return DispatchOutcome(
            entity,
            kind,
            diagnostics=(
                Diagnostic(DiagnosticKind.PARAMETER_ARITY_MISMATCH, str(exc), sequence),
            ),
        )
    return DispatchOutcome(entity, kind, geometry)


def dispatch_all(entities: Sequence[IgesEntity]) -> tuple[DispatchOutcome, ...]:
    return tuple(dispatch(entity) for entity in entities)


def _circular_arc(entity: IgesEntity) -> Entity:
    """Type 100: ZT, center X1/Y1, start X2/Y2, end X3/Y3, counter-clockwise."""
    params = entity.params
    _check_trailer(params, 7, "circular arc")
    zt, x1, y1, x2, y2, x3, y3 = _numbers(params, 0, 7, "arc")
    radius = math.hypot(x2 - x1, y2 - y1)
    if x2 == x3 and y2 == y3:
        return _geometry(entity, "CIRCLE", center=(x1, y1, zt), radius=radius)
    start_angle = math.atan2(y2 - y1, x2 - x1)
    end_angle = math.atan2(y3 - y1, x3 - x1)
    return _geometry(
        entity,
        "ARC",
        center=(x1, y1, zt),
        radius=radius,
        start_angle=math.degrees(start_angle),
        end_angle=math.degrees(end_angle),
        start_angle_rad=start_angle,
        end_angle_rad=end_angle,
        start=(x2, y2, zt),
        end=(x3, y3, zt),
    )


def _composite_curve(entity: IgesEntity) -> Entity:
    params = entity.params
    count = _integer(params, 0, "segment count", minimum=1)
    _check_trailer(params, 1 + count, "composite curve")
    return _placeholder(entity, segments=_pointers(params, 1, 1 + count))


def _copious_data(entity: IgesEntity) -> Entity:
    """Type 106: IP, N, then ZT + N pairs (IP=1), N triples (IP=2) or N sextuples (IP=3)."""
    params = entity.params
    ip = _integer(params, 0, "interpretation flag", minimum=1)
    count = _integer(params, 1, "point count")
    if ip == 1:
        zt = _number(params, 2, "ZT")
        coords = _numbers(params, 3, 3 + 2 * count, "copious data")
        points = [(coords[i], coords[i + 1], zt) for i in range(0, len(coords), 2)]
        used = 3 + 2 * count
    elif ip in (2, 3):
        stride = 3 if ip == 2 else 6
        coords = _numbers(params, 2, 2 + stride * count, "copious data")
        points = [
            (coords[i], coords[i + 1], coords[i + 2]) for i in range(0, len(coords), stride)
        ]
        used = 2 + stride * count
    else:
        raise ParameterShapeError(f"copious data interpretation flag must be 1-3, got {ip}")
    _check_trailer(params, used, "copious data")
    closed = _PATH_FORMS.get(entity.form)
    if closed is None or len(points) < 2:
        return _placeholder(entity, points=points)
    return _geometry(entity, "POLYLINE", points=points, closed=closed)


def _plane(entity: IgesEntity) -> Entity:
    params = entity.params
    _check_trailer(params, 9, "plane")
    a, b, c, d = _numbers(params, 0, 4, "plane")
    x, y, z, size = _numbers(params, 5, 9, "plane")
    return _placeholder(
        entity,
        coefficients=(a, b, c, d),
        curve=_pointers(params, 4, 5)[0],
        symbol_location=(x, y, z),
        symbol_size=size,
    )


def _line(entity: IgesEntity) -> Entity:
    params = entity.params
    _check_trailer(params, 6, "line")
    x1, y1, z1, x2, y2, z2 = _numbers(params, 0, 6, "line")
    return _geometry(entity, "LINE", start=(x1, y1, z1), end=(x2, y2, z2))


def _point(entity: IgesEntity) -> Entity:
    params = entity.params
    used = 4 if len(params) >= 4 else 3
    _check_trailer(params, used, "point")
    x, y, z = _numbers(params, 0, 3, "point")
    symbol = _pointers(params, 3, 4)[0] if used == 4 else 0
    return _geometry(entity, "POINT", location=(x, y, z), symbol=symbol)


def _surface_of_revolution(entity: IgesEntity) -> Entity:
    params = entity.params
    _check_trailer(params, 4, "surface of revolution")
    axis, generatrix = _pointers(params, 0, 2)
    start, end = _numbers(params, 2, 4, "surface of revolution")
    return _placeholder(
        entity, axis=axis, generatrix=generatrix, start_angle_rad=start, end_angle_rad=end
    )


def _tabulated_cylinder(entity: IgesEntity) -> Entity:
    params = entity.params
    _check_trailer(params, 4, "tabulated cylinder")
    directrix = _pointers(params, 0, 1)[0]
    return _placeholder(
        entity, directrix=directrix, terminate=tuple(_numbers(params, 1, 4, "tabulated cylinder"))
    )


def _transformation_matrix(entity: IgesEntity) -> Entity:
    params = entity.params
    _check_trailer(params, 12, "transformation matrix")
    values = _numbers(params, 0, 12, "transformation matrix")
    return _placeholder(entity, matrix=tuple(tuple(values[i : i + 4]) for i in (0, 4, 8)))


def _rational_bspline_curve(entity: IgesEntity) -> Entity:
    params = entity.params
    k = _integer(params, 0, "upper index K")
    degree = _integer(params, 1, "degree M", minimum=1)
    if k < degree:
        raise ParameterShapeError(f"B-spline curve upper index {k} is below degree {degree}")
    planar, closed, polynomial, periodic = (
        _integer(params, i, "property flag") for i in range(2, 6)
    )
    knot_end = 6 + k + degree + 2
    weight_end = knot_end + k + 1
    point_end = weight_end + 3 * (k + 1)
    used = point_end + 5
    _check_trailer(params, used, "rational B-spline curve")
    coords = _numbers(params, weight_end, point_end, "control points")
    v0, v1 = _numbers(params, point_end, point_end + 2, "parameter range")
    return _geometry(
        entity,
        "SPLINE",
        degree=degree,
        knots=_numbers(params, 6, knot_end, "knots"),
        weights=_numbers(params, knot_end, weight_end, "weights"),
        control_points=[tuple(coords[i : i + 3]) for i in range(0, len(coords), 3)],
        rational=not polynomial,
        closed=bool(closed),
        periodic=bool(periodic),
        planar=bool(planar),
        parameter_range=(v0, v1),
        normal=tuple(_numbers(params, point_end + 2, used, "normal")),
    )


def _rational_bspline_surface(entity: IgesEntity) -> Entity:
    params = entity.params
    k1 = _integer(params, 0, "upper index K1")
    k2 = _integer(params, 1, "upper index K2")
    m1 = _integer(params, 2, "degree M1", minimum=1)
    m2 = _integer(params, 3, "degree M2", minimum=1)
    _numbers(params, 4, 9, "property flags")
    net = (k1 + 1) * (k2 + 1)
    used = 9 + (k1 + m1 + 2) + (k2 + m2 + 2) + 4 * net + 4
    _check_trailer(params, used, "rational B-spline surface")
    _numbers(params, 9, used, "surface data")
    return _placeholder(entity, degrees=(m1, m2), control_net=(k1 + 1, k2 + 1))


def _curve_on_parametric_surface(entity: IgesEntity) -> Entity:
    params = entity.params
    _check_trailer(params, 5, "curve on parametric surface")
    created = _integer(params, 0, "creation flag")
    surface, parametric, model = _pointers(params, 1, 4)
    preferred = _integer(params, 4, "preferred representation")
    return _placeholder(
        entity,
        created_by=created,
        surface=surface,
        parametric_curve=parametric,
        model_curve=model,
        preferred=preferred,
    )


def _trimmed_parametric_surface(entity: IgesEntity) -> Entity:
    params = entity.params
    _require(params, 4, "trimmed surface")
    surface = _pointers(params, 0, 1)[0]
    outer_flag = _integer(params, 1, "outer boundary flag")
    inner_count = _integer(params, 2, "inner boundary count")
    _check_trailer(params, 4 + inner_count, "trimmed surface")
    return _placeholder(
        entity,
        surface=surface,
        outer_is_boundary=bool(outer_flag),
        outer=_pointers(params, 3, 4)[0],
        inner=_pointers(params, 4, 4 + inner_count),
    )


def _general_note(entity: IgesEntity) -> Entity:
    """Type 212: NS, then NS blocks of 11 numbers followed by the text string."""
    params = entity.params
    count = _integer(params, 0, "string count")
    _check_trailer(params, 1 + 12 * count, "general note")
    strings: list[dict[str, Any]] = []
    for block in range(count):
        base = 1 + 12 * block
        _, width, height, font, slant, rotation, mirror, orientation, x, y, z = _numbers(
            params, base, base + 11, "note"
        )
        text = params[base + 11]
        if not isinstance(text, str):
            raise ParameterShapeError(f"general note text {block + 1} is not a string literal")
        strings.append(
            {
                "text": text,
                "width": width,
                "height": height,
                "font": int(font),
                "slant_angle": slant,
                "rotation": math.degrees(rotation),
                "mirror": int(mirror),
                "vertical": bool(orientation),
                "insert": (x, y, z),
            }
        )
    if not strings:
        return _placeholder(entity, strings=strings)
    first = strings[0]
    return _geometry(
        entity,
        "TEXT",
        text=first["text"],
        insert=first["insert"],
        height=first["height"],
        rotation=first["rotation"],
        strings=strings,
    )


def _leader(entity: IgesEntity) -> Entity:
    params = entity.params
    count = _integer(params, 0, "segment count")
    _check_trailer(params, 6 + 2 * count, "leader")
    height, width, zt = _numbers(params, 1, 4, "leader")
    coords = _numbers(params, 4, 6 + 2 * count, "leader")
    points = [(coords[i], coords[i + 1], zt) for i in range(0, len(coords), 2)]
    return _placeholder(entity, arrow_size=(height, width), points=points)


def _linear_dimension(entity: IgesEntity) -> Entity:
    params = entity.params
    _check_trailer(params, 5, "linear dimension")
    pointers = _pointers(params, 0, 5)
    return _placeholder(
        entity, note=pointers[0], leaders=tuple(pointers[1:3]), witness_lines=tuple(pointers[3:])
    )


def _color_definition(entity: IgesEntity) -> Entity:
    params = entity.params
    used = 4 if len(params) >= 4 and isinstance(params[3], str) else 3
    _check_trailer(params, used, "color definition")
    rgb = _numbers(params, 0, 3, "color")
    for value in rgb:
        if not 0.0 <= value <= 100.0:
            raise ParameterShapeError(f"color component {value} outside 0-100 percent")
    name = params[3] if used == 4 else ""
    return _placeholder(entity, rgb_percent=tuple(rgb), color_name=name)


def _associativity_instance(entity: IgesEntity) -> Entity:
    params = entity.params
    _require(params, 1, "associativity instance")
    if entity.form not in _GROUP_FORMS:
        return _placeholder(entity)
    count = _integer(params, 0, "member count")
    _check_trailer(params, 1 + count, "associativity group")
    return _placeholder(entity, members=_pointers(params, 1, 1 + count))


def _property(entity: IgesEntity) -> Entity:
    params = entity.params
    count = _integer(params, 0, "property value count")
    _check_trailer(params, 1 + count, "property")
    return _placeholder(entity, values=tuple(params[1 : 1 + count]))


HANDLERS: dict[EntityKind, Callable[[IgesEntity], Entity]] = {
    EntityKind.CIRCULAR_ARC: _circular_arc,
    EntityKind.COMPOSITE_CURVE: _composite_curve,
    EntityKind.COPIOUS_DATA: _copious_data,
    EntityKind.PLANE: _plane,
    EntityKind.LINE: _line,
    EntityKind.POINT: _point,
    EntityKind.SURFACE_OF_REVOLUTION: _surface_of_revolution,
    EntityKind.TABULATED_CYLINDER: _tabulated_cylinder,
    EntityKind.TRANSFORMATION_MATRIX: _transformation_matrix,
    EntityKind.RATIONAL_BSPLINE_CURVE: _rational_bspline_curve,
    EntityKind.RATIONAL_BSPLINE_SURFACE: _rational_bspline_surface,
    EntityKind.CURVE_ON_PARAMETRIC_SURFACE: _curve_on_parametric_surface,
    EntityKind.TRIMMED_PARAMETRIC_SURFACE: _trimmed_parametric_surface,
    EntityKind.GENERAL_NOTE: _general_note,
    EntityKind.LEADER: _leader,
    EntityKind.LINEAR_DIMENSION: _linear_dimension,
    EntityKind.COLOR_DEFINITION: _color_definition,
    EntityKind.ASSOCIATIVITY_INSTANCE: _associativity_instance,
    EntityKind.PROPERTY: _property,
}


def _geometry(entity: IgesEntity, dxftype: str, **dxf: Any) -> Entity:
    record = entity.record
    attrs: dict[str, Any] = {
        "iges_type": int(entity.type),
        "form": entity.form,
        "level": record.level,
        "iges_color": record.color,
        "name": record.entity_name,
        "line_font": record.line_type,
    }
    color_index = IGES_COLOR_TO_ACI.get(record.color or 0)
    if color_index is not None:
        attrs["color_index"] = color_index
    attrs.update(dxf)
    return Entity(dxftype=dxftype, handle=entity.sequence_number or 0, dxf=attrs)


def _placeholder(entity: IgesEntity, **dxf: Any) -> Entity:
    kind = EntityKind.from_code(entity.type)
    name = kind.name if kind is not None else f"IGES_{entity.type}"
    return _geometry(entity, name, constructed=False, params=entity.params, **dxf)


def _require(params: Sequence[ParameterValue], count: int, label: str) -> None:
    if len(params) < count:
        raise ParameterShapeError(f"{label} needs {count} parameters, got {len(params)}")


def _number(params: Sequence[ParameterValue], index: int, name: str) -> float:
    if index >= len(params):
        raise ParameterShapeError(f"missing parameter {index + 1} ({name})")
    value = params[index]
    if isinstance(value, str):
        raise ParameterShapeError(f"parameter {index + 1} ({name}) is a string, expected a number")
    return value


def _numbers(params: Sequence[ParameterValue], start: int, stop: int, name: str) -> list[float]:
    return [_number(params, index, name) for index in range(start, stop)]


def _integer(params: Sequence[ParameterValue], index: int, name: str, *, minimum: int = 0) -> int:
    value = _number(params, index, name)
    if not value.is_integer() or value < minimum:
        raise ParameterShapeError(
            f"parameter {index + 1} ({name}) must be an integer >= {minimum}, got {value}"
        )
    return int(value)


def _pointers(params: Sequence[ParameterValue], start: int, stop: int) -> list[int]:
    return [_integer(params, index, "DE pointer") for index in range(start, stop)]


def _check_trailer(params: Sequence[ParameterValue], used: int, label: str) -> None:
    """Accept ``used`` parameters plus the optional back-pointer and property groups."""
    _require(params, used, label)
    extra = params[used:]
    if not extra:
        return
    try:
        back_count = _integer(extra, 0, "back pointer count")
        _pointers(extra, 1, 1 + back_count)
        rest = extra[1 + back_count :]
        if rest:
            property_count = _integer(rest, 0, "property count")
            if len(rest) != 1 + property_count:
                raise ParameterShapeError("property group length mismatch")
            _pointers(rest, 1, 1 + property_count)
    except ParameterShapeError:
        raise ParameterShapeError(
            f"{label} takes {used} parameters, got {len(params)}"
        ) from None