from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

Point3D = tuple[float, float, float]


@dataclass(frozen=True)
class Entity:
    dxftype: str
    handle: int
    dxf: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "dxf", MappingProxyType(dict(self.dxf)))

    @property
    def constructed(self) -> bool:
        return bool(self.dxf.get("constructed", True))

    def to_points(self) -> list[Point3D]:
        if self.dxftype == "LINE":
            return [self.dxf["start"], self.dxf["end"]]
        if self.dxftype == "POINT":
            return [self.dxf["location"]]
        if self.dxftype == "ARC":
            return [self.dxf["start"], self.dxf["end"]]
        if self.dxftype == "CIRCLE":
            cx, cy, cz = self.dxf["center"]
            radius = self.dxf["radius"]
            return [
                (cx + radius * math.cos(t), cy + radius * math.sin(t), cz)
                for t in (0.0, 0.5 * math.pi, math.pi, 1.5 * math.pi)
            ]
        if self.dxftype == "POLYLINE":
            return list(self.dxf.get("points", []))
        if self.dxftype == "SPLINE":
            return list(self.dxf.get("control_points", []))
        if self.dxftype == "TEXT":
            return [self.dxf["insert"]]
        raise NotImplementedError(f"to_points is not supported for {self.dxftype}")
