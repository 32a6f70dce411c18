from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Any, ClassVar, Union

Point2D = tuple[float, float]
Point3D = tuple[float, float, float]

BYBLOCK = 0
BYLAYER = 256
DEFAULT_LAYER = "0"
DEFAULT_LINETYPE = "BYLAYER"
UNASSIGNED_HANDLE = -1
DEFAULT_EXTRUSION: Point3D = (0.0, 0.0, 1.0)
ORIGIN: Point3D = (0.0, 0.0, 0.0)


def _point2(value: Any) -> Point2D:
    if isinstance(value, (list, tuple)) and len(value) >= 2:
        return (float(value[0]), float(value[1]))
    raise ValueError(f"invalid point value: {value!r}")


def _point3(value: Any) -> Point3D:
    if isinstance(value, (list, tuple)):
        if len(value) >= 3:
            return (float(value[0]), float(value[1]), float(value[2]))
        if len(value) == 2:
            return (float(value[0]), float(value[1]), 0.0)
    raise ValueError(f"invalid point value: {value!r}")


def _freeze(obj: object, name: str, value: object) -> None:
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class CommonEntityHeader:
    handle: int = UNASSIGNED_HANDLE
    linetype: str = DEFAULT_LINETYPE
    layer: str = DEFAULT_LAYER
    color: int = BYLAYER
    paperspace: bool = False
    thickness: float = 0.0
    # version the entity was decoded with; not part of the entity's identity
    version: int | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        _freeze(self, "paperspace", bool(self.paperspace))
        _freeze(self, "thickness", float(self.thickness))


@dataclass(frozen=True)
class _HeaderEntity:
    header: CommonEntityHeader = field(default_factory=CommonEntityHeader)

    @property
    def handle(self) -> int:
        return self.header.handle


@dataclass(frozen=True)
class Arc(_HeaderEntity):
    dxftype: ClassVar[str] = "ARC"

    center: Point3D = ORIGIN
    radius: float = 0.0
    start_angle: float = 0.0
    end_angle: float = 0.0
    extrusion: Point3D = DEFAULT_EXTRUSION

    def __post_init__(self) -> None:
        _freeze(self, "center", _point3(self.center))
        _freeze(self, "extrusion", _point3(self.extrusion))


@dataclass(frozen=True)
class Line(_HeaderEntity):
    dxftype: ClassVar[str] = "LINE"

    start: Point3D = ORIGIN
    end: Point3D = ORIGIN
    extrusion: Point3D = DEFAULT_EXTRUSION

    def __post_init__(self) -> None:
        _freeze(self, "start", _point3(self.start))
        _freeze(self, "end", _point3(self.end))
        _freeze(self, "extrusion", _point3(self.extrusion))


@dataclass(frozen=True)
class ThreeDFace(_HeaderEntity):
    """Four corners; a triangle repeats the third corner as the fourth.

    ``flags`` bits 1, 2, 4 and 8 mark the first to fourth edge invisible.
    """

    dxftype: ClassVar[str] = "3DFACE"

    vertices: tuple[Point3D, Point3D, Point3D, Point3D] = (ORIGIN, ORIGIN, ORIGIN, ORIGIN)
    flags: int = 0

    def __post_init__(self) -> None:
        corners = [_point3(point) for point in self.vertices]
        if len(corners) == 3:
            corners.append(corners[2])
        if len(corners) != 4:
            raise ValueError(f"3DFACE needs 3 or 4 corners, got {len(corners)}")
        _freeze(self, "vertices", tuple(corners))

    def is_edge_invisible(self, edge: int) -> bool:
        return bool(self.flags & (1 << edge))


@dataclass(frozen=True)
class Class:
    dxftype: ClassVar[str] = "CLASS"

    record_name: str = ""
    class_name: str = ""
    app_name: str = ""
    proxy_flags: int = 0
    was_a_proxy: bool = False
    is_an_entity: bool = False

    def __post_init__(self) -> None:
        _freeze(self, "was_a_proxy", bool(self.was_a_proxy))
        _freeze(self, "is_an_entity", bool(self.is_an_entity))


@dataclass(frozen=True)
class EndTab:
    dxftype: ClassVar[str] = "ENDTAB"

    table_name: str = ""


class HatchStyle(IntEnum):
    ODD_PARITY = 0
    OUTERMOST = 1
    THROUGH_ENTIRE = 2


class PatternType(IntEnum):
    USER_DEFINED = 0
    PREDEFINED = 1
    CUSTOM = 2


class BoundaryPathFlag(IntFlag):
    DEFAULT = 0
    EXTERNAL = 1
    POLYLINE = 2
    DERIVED = 4
    TEXTBOX = 8
    OUTERMOST = 16


class EdgeType(IntEnum):
    LINE = 1
    ARC = 2
    ELLIPSE = 3
    SPLINE = 4


@dataclass(frozen=True)
class LineEdge:
    edge_type: ClassVar[EdgeType] = EdgeType.LINE

    start: Point2D = (0.0, 0.0)
    end: Point2D = (0.0, 0.0)

    def __post_init__(self) -> None:
        _freeze(self, "start", _point2(self.start))
        _freeze(self, "end", _point2(self.end))


@dataclass(frozen=True)
class ArcEdge:
    edge_type: ClassVar[EdgeType] = EdgeType.ARC

    center: Point2D = (0.0, 0.0)
    radius: float = 1.0
    start_angle: float = 0.0
    end_angle: float = 360.0
    ccw: bool = True

    def __post_init__(self) -> None:
        _freeze(self, "center", _point2(self.center))
        _freeze(self, "ccw", bool(self.ccw))


@dataclass(frozen=True)
class EllipseEdge:
    edge_type: ClassVar[EdgeType] = EdgeType.ELLIPSE

    center: Point2D = (0.0, 0.0)
    # end point of the major axis, relative to the center
    major_axis: Point2D = (1.0, 0.0)
    ratio: float = 1.0
    start_angle: float = 0.0
    end_angle: float = 360.0
    ccw: bool = True

    def __post_init__(self) -> None:
        _freeze(self, "center", _point2(self.center))
        _freeze(self, "major_axis", _point2(self.major_axis))
        _freeze(self, "ccw", bool(self.ccw))


@dataclass(frozen=True)
class SplineEdge:
    """Control points are (x, y, weight); a 2-tuple gets weight 1.0."""

    edge_type: ClassVar[EdgeType] = EdgeType.SPLINE

    degree: int = 3
    rational: bool = False
    periodic: bool = False
    knots: tuple[float, ...] = ()
    control_points: tuple[Point3D, ...] = ()
    fit_points: tuple[Point2D, ...] = ()
    start_tangent: Point2D | None = None
    end_tangent: Point2D | None = None

    def __post_init__(self) -> None:
        _freeze(self, "rational", bool(self.rational))
        _freeze(self, "periodic", bool(self.periodic))
        _freeze(self, "knots", tuple(float(k) for k in self.knots))
        points = []
        for point in self.control_points:
            weight = float(point[2]) if len(point) >= 3 else 1.0
            points.append((float(point[0]), float(point[1]), weight))
        _freeze(self, "control_points", tuple(points))
        _freeze(self, "fit_points", tuple(_point2(p) for p in self.fit_points))
        if self.start_tangent is not None:
            _freeze(self, "start_tangent", _point2(self.start_tangent))
        if self.end_tangent is not None:
            _freeze(self, "end_tangent", _point2(self.end_tangent))

    @property
    def weights(self) -> list[float]:
        return [point[2] for point in self.control_points]


Edge = Union[LineEdge, ArcEdge, EllipseEdge, SplineEdge]


@dataclass(frozen=True)
class PolylinePath:
    """Vertices are (x, y, bulge), each stored once even for closed paths."""

    vertices: tuple[Point3D, ...] = ()
    is_closed: bool = True
    has_bulge: bool = False
    flags: int = BoundaryPathFlag.EXTERNAL
    source_handles: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        vertices = []
        for vertex in self.vertices:
            bulge = float(vertex[2]) if len(vertex) >= 3 else 0.0
            vertices.append((float(vertex[0]), float(vertex[1]), bulge))
        _freeze(self, "vertices", tuple(vertices))
        _freeze(self, "is_closed", bool(self.is_closed))
        _freeze(self, "has_bulge", bool(self.has_bulge))
        _freeze(self, "flags", int(self.flags) | int(BoundaryPathFlag.POLYLINE))
        _freeze(self, "source_handles", tuple(str(h) for h in self.source_handles))


@dataclass(frozen=True)
class EdgePath:
    """Edges in loop order: each edge ends where the next one starts."""

    edges: tuple[Edge, ...] = ()
    flags: int = BoundaryPathFlag.EXTERNAL
    source_handles: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "edges", tuple(self.edges))
        _freeze(self, "flags", int(self.flags) & ~int(BoundaryPathFlag.POLYLINE))
        _freeze(self, "source_handles", tuple(str(h) for h in self.source_handles))


BoundaryPath = Union[PolylinePath, EdgePath]


@dataclass(frozen=True)
class PatternDefLine:
    """One hatch pattern line; no dashes means a continuous line."""

    angle: float = 0.0
    base_point: Point2D = (0.0, 0.0)
    offset: Point2D = (0.0, 0.0)
    dashes: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "base_point", _point2(self.base_point))
        _freeze(self, "offset", _point2(self.offset))
        _freeze(self, "dashes", tuple(float(d) for d in self.dashes))


@dataclass(frozen=True)
class Hatch(_HeaderEntity):
    dxftype: ClassVar[str] = "HATCH"

    pattern_name: str = "SOLID"
    # elevation point; only its Z carries meaning
    base_point: Point3D = ORIGIN
    extrusion: Point3D = DEFAULT_EXTRUSION
    solid_fill: bool = True
    associative: bool = False
    style: HatchStyle = HatchStyle.ODD_PARITY
    pattern_type: PatternType = PatternType.PREDEFINED
    pattern_angle: float = 0.0
    pattern_scale: float = 1.0
    pattern_double: bool = False
    pixel_size: float = 0.0
    boundary_paths: tuple[BoundaryPath, ...] = ()
    pattern_lines: tuple[PatternDefLine, ...] = ()
    seed_points: tuple[Point2D, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "base_point", _point3(self.base_point))
        _freeze(self, "extrusion", _point3(self.extrusion))
        _freeze(self, "solid_fill", bool(self.solid_fill))
        _freeze(self, "associative", bool(self.associative))
        _freeze(self, "pattern_double", bool(self.pattern_double))
        _freeze(self, "style", HatchStyle(int(self.style)))
        _freeze(self, "pattern_type", PatternType(int(self.pattern_type)))
        _freeze(self, "boundary_paths", tuple(self.boundary_paths))
        _freeze(self, "pattern_lines", tuple(self.pattern_lines))
        _freeze(self, "seed_points", tuple(_point2(p) for p in self.seed_points))


Entity = Union[Arc, Line, ThreeDFace, Class, EndTab, Hatch]
