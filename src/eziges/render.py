from __future__ import annotations

import math
from typing import Any, Iterable

from .document import Document, Layout

_ACI_COLORS = {
    1: "#ff0000",
    2: "#ffff00",
    3: "#00ff00",
    4: "#00ffff",
    5: "#0000ff",
    6: "#ff00ff",
    7: "#000000",
}


def plot(
    source: Document | Layout,
    *,
    types: str | Iterable[str] | None = None,
    ax: Any = None,
    show: bool = True,
    title: str | None = None,
    line_width: float = 0.8,
    auto_fit: bool = True,
    equal: bool = True,
    arc_segments: int = 64,
):
    layout = source.modelspace() if isinstance(source, Document) else source
    return plot_layout(
        layout,
        types=types,
        ax=ax,
        show=show,
        title=title,
        line_width=line_width,
        auto_fit=auto_fit,
        equal=equal,
        arc_segments=arc_segments,
    )


def plot_layout(
    layout: Layout,
    *,
    types: str | Iterable[str] | None = None,
    ax: Any = None,
    show: bool = True,
    title: str | None = None,
    line_width: float = 0.8,
    auto_fit: bool = True,
    equal: bool = True,
    arc_segments: int = 64,
):
    plt = _require_matplotlib()
    if ax is None:
        _fig, ax = plt.subplots()

    for entity in layout.query(types):
        dxf = entity.dxf
        color = _resolve_iges_color(dxf)
        dxftype = entity.dxftype
        if dxftype == "LINE":
            _draw_line(ax, dxf["start"], dxf["end"], line_width, color=color)
        elif dxftype == "POINT":
            _draw_point(ax, dxf["location"], color=color)
        elif dxftype == "ARC":
            path = _build_arc_path(
                dxf["center"],
                dxf["radius"],
                dxf["start_angle_rad"],
                dxf["end_angle_rad"],
                arc_segments,
            )
            _draw_path(ax, path, line_width, color=color)
        elif dxftype == "CIRCLE":
            path = _build_arc_path(dxf["center"], dxf["radius"], 0.0, 2.0 * math.pi, arc_segments)
            _draw_path(ax, path, line_width, color=color)
        elif dxftype == "POLYLINE":
            points = [(point[0], point[1]) for point in dxf.get("points", [])]
            if dxf.get("closed") and points:
                points.append(points[0])
            _draw_path(ax, points, line_width, color=color)
        elif dxftype == "SPLINE":
            # control polygon only; NURBS evaluation is left to the DXF consumer
            points = [(point[0], point[1]) for point in dxf.get("control_points", [])]
            _draw_path(ax, points, line_width, color=color, linestyle=":")
        elif dxftype == "TEXT":
            x, y, _z = dxf["insert"]
            ax.text(x, y, dxf.get("text", ""), rotation=dxf.get("rotation") or 0.0, color=color)

    if title:
        ax.set_title(title)
    if equal:
        ax.set_aspect("equal", adjustable="box")
    if auto_fit:
        ax.autoscale(True)
    if show:
        plt.show()
    return ax


def _require_matplotlib():
    try:
        import matplotlib.pyplot as plt
    except Exception as exc:
        raise ImportError(
            "matplotlib is required for plotting. "
            'Install it with `pip install "eziges[plot]"`.'
        ) from exc
    return plt


def _resolve_iges_color(dxf: dict[str, Any]) -> str:
    return _ACI_COLORS.get(dxf.get("color_index") or 7, "#000000")


def _build_arc_path(
    center: tuple[float, float, float],
    radius: float,
    start_angle: float,
    end_angle: float,
    segments: int,
) -> list[tuple[float, float]]:
    sweep = end_angle - start_angle
    if sweep <= 0.0:
        sweep += 2.0 * math.pi
    steps = max(2, int(math.ceil(segments * sweep / (2.0 * math.pi))))
    cx, cy = center[0], center[1]
    return [
        (
            cx + radius * math.cos(start_angle + sweep * i / steps),
            cy + radius * math.sin(start_angle + sweep * i / steps),
        )
        for i in range(steps + 1)
    ]


def _draw_line(ax: Any, start, end, line_width: float, color: str | None = None) -> None:
    ax.plot([start[0], end[0]], [start[1], end[1]], linewidth=line_width, color=color)


def _draw_point(ax: Any, location, color: str | None = None) -> None:
    ax.plot([location[0]], [location[1]], marker="o", markersize=2.0, color=color)


def _draw_path(
    ax: Any,
    points: list[tuple[float, float]],
    line_width: float,
    color: str | None = None,
    linestyle: str = "-",
) -> None:
    if len(points) < 2:
        return
    xs = [point[0] for point in points]
    ys = [point[1] for point in points]
    ax.plot(xs, ys, linewidth=line_width, color=color, linestyle=linestyle)
