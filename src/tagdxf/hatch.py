"""HATCH: boundary paths, edges, pattern definition lines and seed points.

Every variable-length part of a hatch is preceded by an explicit count
(91 paths, 93 vertices or edges, 95 knots, 96 control points, 97 fit points
or source objects, 78 pattern lines, 79 dashes, 98 seed points). The decoder
trusts those counts: it reads exactly that many items and raises
``StreamError`` when the stream does not deliver them.
"""

from __future__ import annotations

import dataclasses
from typing import Callable

from .codec import DecodeContext, EntityCodec, FieldSpec, _points, write_thickness
from .diagnostics import Diagnostics
from .entity import (
    ArcEdge,
    BoundaryPath,
    BoundaryPathFlag,
    CommonEntityHeader,
    Edge,
    EdgePath,
    EdgeType,
    EllipseEdge,
    Hatch,
    HatchStyle,
    LineEdge,
    PatternDefLine,
    PatternType,
    PolylinePath,
    SplineEdge,
)
from .errors import CorrectionWarning, StreamError
from .tags import GroupCodeRecord, TagWriter
from .versions import VersionField, is_field_legal

PATH_COUNT = 91
PATTERN_LINE_COUNT = 78
SEED_POINT_COUNT = 98


def _read_point2(ctx: DecodeContext, code: int) -> tuple[float, float]:
    x = ctx.expect_value(code)
    y = ctx.expect_value(code + 10)
    return (x, y)


def _read_flag(ctx: DecodeContext, code: int) -> bool:
    return bool(ctx.expect_value(code, 0))


def read_boundary_paths(ctx: DecodeContext, count: int) -> tuple[BoundaryPath, ...]:
    paths = []
    for index in range(count):
        with ctx.scope(f"path[{index}]"):
            paths.append(read_boundary_path(ctx))
    return tuple(paths)


def read_boundary_path(ctx: DecodeContext) -> BoundaryPath:
    flags = ctx.expect_count(92)
    if flags & BoundaryPathFlag.POLYLINE:
        path: BoundaryPath = _read_polyline_path(ctx, flags)
    else:
        edge_count = ctx.expect_count(93)
        edges = []
        for index in range(edge_count):
            with ctx.scope(f"edge[{index}]"):
                edges.append(read_edge(ctx))
        path = EdgePath(edges=tuple(edges), flags=flags)
    sources = _read_source_handles(ctx)
    if sources:
        path = dataclasses.replace(path, source_handles=sources)
    return path


def _read_polyline_path(ctx: DecodeContext, flags: int) -> PolylinePath:
    has_bulge = _read_flag(ctx, 72)
    is_closed = _read_flag(ctx, 73)
    count = ctx.expect_count(93)
    vertices = []
    for index in range(count):
        with ctx.scope(f"vertex[{index}]"):
            x, y = _read_point2(ctx, 10)
            # group 42 is the vertex bulge here
            bulge = ctx.optional_value(42, 0.0)
            if bulge and not has_bulge:
                ctx.warn("bulge on a path without the has-bulge flag ignored")
                bulge = 0.0
            vertices.append((x, y, bulge))
    # the declared count includes the closing duplicate of the first vertex
    if is_closed and len(vertices) > 1 and vertices[-1][:2] == vertices[0][:2]:
        vertices.pop()
    return PolylinePath(
        vertices=tuple(vertices),
        is_closed=is_closed,
        has_bulge=has_bulge,
        flags=flags,
    )


def _read_source_handles(ctx: DecodeContext) -> tuple[str, ...]:
    ctx.skip_comments()
    if ctx.stream.peek_code() != 97:
        return ()
    count = ctx.expect_count(97)
    return tuple(ctx.expect(330).value for _ in range(count))


def read_edge(ctx: DecodeContext) -> Edge:
    record = ctx.expect(72)
    try:
        edge_type = EdgeType(int(record.value))
    except ValueError as exc:
        raise StreamError(
            f"{ctx.where}: unsupported boundary path edge type {record.value!r}",
            record.line_number,
            exc,
        ) from exc
    return _EDGE_READERS[edge_type](ctx)


def _read_line_edge(ctx: DecodeContext) -> LineEdge:
    return LineEdge(start=_read_point2(ctx, 10), end=_read_point2(ctx, 11))


def _read_arc_edge(ctx: DecodeContext) -> ArcEdge:
    return ArcEdge(
        center=_read_point2(ctx, 10),
        radius=ctx.expect_value(40),
        start_angle=ctx.expect_value(50),
        end_angle=ctx.expect_value(51),
        ccw=_read_flag(ctx, 73),
    )


def _read_ellipse_edge(ctx: DecodeContext) -> EllipseEdge:
    return EllipseEdge(
        center=_read_point2(ctx, 10),
        major_axis=_read_point2(ctx, 11),
        ratio=ctx.expect_value(40),
        start_angle=ctx.expect_value(50),
        end_angle=ctx.expect_value(51),
        ccw=_read_flag(ctx, 73),
    )


def _read_spline_edge(ctx: DecodeContext) -> SplineEdge:
    degree = ctx.expect_value(94, 3)
    rational = _read_flag(ctx, 73)
    periodic = _read_flag(ctx, 74)
    knot_count = ctx.expect_count(95)
    control_point_count = ctx.expect_count(96)
    knots = tuple(ctx.expect_value(40) for _ in range(knot_count))
    control_points = []
    for index in range(control_point_count):
        with ctx.scope(f"control_point[{index}]"):
            x, y = _read_point2(ctx, 10)
            # group 42 is the control point weight here
            weight = ctx.optional_value(42, 1.0)
            control_points.append((x, y, weight))

    fit_points: list[tuple[float, float]] = []
    start_tangent = end_tangent = None
    if is_field_legal(VersionField.SPLINE_FIT_DATA, ctx.version):
        ctx.skip_comments()
        if ctx.stream.peek_code() == 97:
            fit_count = ctx.expect_count(97)
            fit_points = [_read_point2(ctx, 11) for _ in range(fit_count)]
            ctx.skip_comments()
            if ctx.stream.peek_code() == 12:
                start_tangent = _read_point2(ctx, 12)
            ctx.skip_comments()
            if ctx.stream.peek_code() == 13:
                end_tangent = _read_point2(ctx, 13)

    return SplineEdge(
        degree=degree,
        rational=rational,
        periodic=periodic,
        knots=knots,
        control_points=tuple(control_points),
        fit_points=tuple(fit_points),
        start_tangent=start_tangent,
        end_tangent=end_tangent,
    )


_EDGE_READERS: dict[EdgeType, Callable[[DecodeContext], Edge]] = {
    EdgeType.LINE: _read_line_edge,
    EdgeType.ARC: _read_arc_edge,
    EdgeType.ELLIPSE: _read_ellipse_edge,
    EdgeType.SPLINE: _read_spline_edge,
}


def read_pattern_lines(ctx: DecodeContext, count: int) -> tuple[PatternDefLine, ...]:
    lines = []
    for index in range(count):
        with ctx.scope(f"pattern_line[{index}]"):
            angle = ctx.expect_value(53)
            base_point = (ctx.expect_value(43), ctx.expect_value(44))
            offset = (ctx.expect_value(45), ctx.expect_value(46))
            dash_count = ctx.expect_count(79)
            dashes = tuple(ctx.expect_value(49) for _ in range(dash_count))
        lines.append(
            PatternDefLine(angle=angle, base_point=base_point, offset=offset, dashes=dashes)
        )
    return tuple(lines)


def read_seed_points(ctx: DecodeContext, count: int) -> tuple[tuple[float, float], ...]:
    with ctx.scope("seed_points"):
        return tuple(_read_point2(ctx, 10) for _ in range(count))


def write_boundary_path(writer: TagWriter, path: BoundaryPath) -> None:
    if isinstance(path, PolylinePath):
        _write_polyline_path(writer, path)
    else:
        writer.write(92, path.flags)
        writer.write(93, len(path.edges))
        for edge in path.edges:
            writer.write(72, int(edge.edge_type))
            _EDGE_WRITERS[type(edge)](writer, edge)
    writer.write(97, len(path.source_handles))
    for handle in path.source_handles:
        writer.write(330, handle)


def _write_polyline_path(writer: TagWriter, path: PolylinePath) -> None:
    has_bulge = path.has_bulge or any(vertex[2] != 0.0 for vertex in path.vertices)
    writer.write(92, path.flags)
    writer.write(72, int(has_bulge))
    writer.write(73, int(path.is_closed))
    vertices = list(path.vertices)
    if path.is_closed:
        first = vertices[0]
        vertices.append((first[0], first[1], 0.0))
    writer.write(93, len(vertices))
    for x, y, bulge in vertices:
        writer.write(10, x)
        writer.write(20, y)
        if has_bulge:
            writer.write(42, bulge)


def _write_line_edge(writer: TagWriter, edge: LineEdge) -> None:
    writer.write_point(10, edge.start)
    writer.write_point(11, edge.end)


def _write_arc_edge(writer: TagWriter, edge: ArcEdge) -> None:
    writer.write_point(10, edge.center)
    writer.write(40, edge.radius)
    writer.write(50, edge.start_angle)
    writer.write(51, edge.end_angle)
    writer.write(73, int(edge.ccw))


def _write_ellipse_edge(writer: TagWriter, edge: EllipseEdge) -> None:
    writer.write_point(10, edge.center)
    writer.write_point(11, edge.major_axis)
    writer.write(40, edge.ratio)
    writer.write(50, edge.start_angle)
    writer.write(51, edge.end_angle)
    writer.write(73, int(edge.ccw))


def _write_spline_edge(writer: TagWriter, edge: SplineEdge) -> None:
    writer.write(94, edge.degree)
    writer.write(73, int(edge.rational))
    writer.write(74, int(edge.periodic))
    writer.write(95, len(edge.knots))
    writer.write(96, len(edge.control_points))
    for knot in edge.knots:
        writer.write(40, knot)
    weighted = edge.rational or any(weight != 1.0 for weight in edge.weights)
    for x, y, weight in edge.control_points:
        writer.write(10, x)
        writer.write(20, y)
        if weighted:
            writer.write(42, weight)
    if is_field_legal(VersionField.SPLINE_FIT_DATA, writer.version):
        writer.write(97, len(edge.fit_points))
        for point in edge.fit_points:
            writer.write_point(11, point)
        if edge.start_tangent is not None:
            writer.write_point(12, edge.start_tangent)
        if edge.end_tangent is not None:
            writer.write_point(13, edge.end_tangent)


_EDGE_WRITERS: dict[type, Callable[[TagWriter, Edge], None]] = {
    LineEdge: _write_line_edge,
    ArcEdge: _write_arc_edge,
    EllipseEdge: _write_ellipse_edge,
    SplineEdge: _write_spline_edge,
}


def write_pattern_line(writer: TagWriter, line: PatternDefLine) -> None:
    writer.write(53, line.angle)
    writer.write(43, line.base_point[0])
    writer.write(44, line.base_point[1])
    writer.write(45, line.offset[0])
    writer.write(46, line.offset[1])
    writer.write(79, len(line.dashes))
    for dash in line.dashes:
        writer.write(49, dash)


class HatchCodec(EntityCodec):
    dxftype = "HATCH"
    entity_class = Hatch
    elevation_point = "base_point"
    codes = {
        **_points("base_point", 10),
        **_points("extrusion", 210),
        2: FieldSpec("pattern_name"),
        41: FieldSpec("pattern_scale"),
        47: FieldSpec("pixel_size"),
        52: FieldSpec("pattern_angle"),
        70: FieldSpec("solid_fill", convert=bool),
        71: FieldSpec("associative", convert=bool),
        75: FieldSpec("style", convert=HatchStyle),
        76: FieldSpec("pattern_type", convert=PatternType),
        77: FieldSpec("pattern_double", convert=bool),
    }

    def decode_structured(self, ctx: DecodeContext, record: GroupCodeRecord) -> bool:
        if record.code not in (PATH_COUNT, PATTERN_LINE_COUNT, SEED_POINT_COUNT):
            return False
        try:
            count = int(record.value)
        except ValueError as exc:
            raise StreamError(
                f"{ctx.where}: invalid count {record.value!r} for group code {record.code}",
                record.line_number,
                exc,
            ) from exc
        if count < 0:
            raise StreamError(f"{ctx.where}: negative count {count}", record.line_number)
        if record.code == PATH_COUNT:
            ctx.fields["boundary_paths"] = read_boundary_paths(ctx, count)
        elif record.code == PATTERN_LINE_COUNT:
            ctx.fields["pattern_lines"] = read_pattern_lines(ctx, count)
        else:
            ctx.fields["seed_points"] = read_seed_points(ctx, count)
        return True

    def validate(self, entity: Hatch, diagnostics: Diagnostics) -> CommonEntityHeader:
        self.check_text(entity, "pattern_name", entity.pattern_name)
        for index, path in enumerate(entity.boundary_paths):
            field = f"boundary_paths[{index}]"
            if isinstance(path, PolylinePath):
                if not path.vertices:
                    raise self.invalid(entity, f"{field}.vertices", "polyline path has no vertices")
                if not path.has_bulge and any(vertex[2] != 0.0 for vertex in path.vertices):
                    diagnostics.warn(
                        self.dxftype,
                        f"{field} has bulge values but no has-bulge flag; flag set on output",
                        category=CorrectionWarning,
                    )
            elif isinstance(path, EdgePath):
                for edge_index, edge in enumerate(path.edges):
                    if type(edge) not in _EDGE_WRITERS:
                        raise self.invalid(
                            entity,
                            f"{field}.edges[{edge_index}]",
                            f"unsupported boundary path edge {type(edge).__name__}",
                        )
            else:
                raise self.invalid(
                    entity, field, f"unsupported boundary path {type(path).__name__}"
                )
        if entity.solid_fill and entity.pattern_lines:
            diagnostics.warn(
                self.dxftype,
                "pattern definition lines of a solid fill hatch are not written",
                category=CorrectionWarning,
            )
        return super().validate(entity, diagnostics)

    def encode(self, entity: Hatch, version: int, diagnostics: Diagnostics) -> list[tuple[int, str]]:
        if not is_field_legal(VersionField.SPLINE_FIT_DATA, version) and any(
            isinstance(edge, SplineEdge) and (edge.fit_points or edge.start_tangent or edge.end_tangent)
            for path in entity.boundary_paths
            if isinstance(path, EdgePath)
            for edge in path.edges
        ):
            diagnostics.warn(
                self.dxftype,
                "spline edge fit data needs R2010 or later and is not written",
                category=CorrectionWarning,
            )
        return super().encode(entity, version, diagnostics)

    def write_fields(self, writer: TagWriter, entity: Hatch, diagnostics: Diagnostics) -> None:
        writer.write_subclass("AcDbHatch")
        writer.write_point(10, entity.base_point)
        writer.write_extrusion(entity.extrusion)
        write_thickness(writer, entity.header)
        writer.write(2, entity.pattern_name)
        writer.write(70, int(entity.solid_fill))
        writer.write(71, int(entity.associative))
        writer.write(PATH_COUNT, len(entity.boundary_paths))
        for path in entity.boundary_paths:
            write_boundary_path(writer, path)
        writer.write(75, int(entity.style))
        writer.write(76, int(entity.pattern_type))
        if not entity.solid_fill:
            writer.write(52, entity.pattern_angle)
            writer.write(41, entity.pattern_scale)
            writer.write(77, int(entity.pattern_double))
            writer.write(PATTERN_LINE_COUNT, len(entity.pattern_lines))
            for line in entity.pattern_lines:
                write_pattern_line(writer, line)
        writer.write(47, entity.pixel_size)
        writer.write(SEED_POINT_COUNT, len(entity.seed_points))
        for point in entity.seed_points:
            writer.write_point(10, point)
