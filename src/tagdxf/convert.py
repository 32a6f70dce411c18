from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from .document import Drawing, read
from .entity import (
    BYLAYER,
    DEFAULT_EXTRUSION,
    DEFAULT_LINETYPE,
    Arc,
    ArcEdge,
    CommonEntityHeader,
    EdgePath,
    EllipseEdge,
    Entity,
    Hatch,
    Line,
    LineEdge,
    PolylinePath,
    SplineEdge,
    ThreeDFace,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvertResult:
    source_path: str
    output_path: str
    total_entities: int
    written_entities: int
    skipped_entities: int
    skipped_by_type: dict[str, int]


def to_dxf(
    source: str | Path | Drawing,
    output_path: str,
    *,
    types: str | Iterable[str] | None = None,
    dxf_version: str = "R2010",
    strict: bool = False,
) -> ConvertResult:
    """Rebuild the decoded entities of ``source`` in a new ezdxf document."""
    ezdxf = _require_ezdxf()
    source_path, drawing = _resolve_drawing(source)

    dxf_doc = ezdxf.new(dxfversion=dxf_version)
    modelspace = dxf_doc.modelspace()

    total = 0
    written = 0
    skipped_by_type: dict[str, int] = {}

    for entity in drawing.query(types):
        total += 1
        if _write_entity_to_modelspace(dxf_doc, modelspace, entity):
            written += 1
            continue
        skipped_by_type[entity.dxftype] = skipped_by_type.get(entity.dxftype, 0) + 1

    skipped = total - written
    if strict and skipped > 0:
        summary = ", ".join(
            f"{dxftype}:{count}" for dxftype, count in sorted(skipped_by_type.items())
        )
        raise ValueError(f"failed to convert {skipped} entities ({summary})")

    out_path = Path(output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    dxf_doc.saveas(str(out_path))

    return ConvertResult(
        source_path=source_path,
        output_path=str(out_path),
        total_entities=total,
        written_entities=written,
        skipped_entities=skipped,
        skipped_by_type=dict(sorted(skipped_by_type.items())),
    )


def _require_ezdxf():
    try:
        import ezdxf
    except Exception as exc:
        raise ImportError(
            "ezdxf is required for DXF export. "
            'Install it with `pip install "tagdxf[dxf]"`.'
        ) from exc
    return ezdxf


def _resolve_drawing(source: str | Path | Drawing) -> tuple[str, Drawing]:
    if isinstance(source, Drawing):
        return source.path or "<drawing>", source
    return str(source), read(source)


def _write_entity_to_modelspace(dxf_doc: Any, modelspace: Any, entity: Entity) -> bool:
    try:
        return _write_entity_to_modelspace_unsafe(dxf_doc, modelspace, entity)
    except Exception as exc:
        logger.debug("failed to export %s: %s", entity.dxftype, exc)
        return False


def _write_entity_to_modelspace_unsafe(dxf_doc: Any, modelspace: Any, entity: Entity) -> bool:
    if isinstance(entity, Line):
        dxfattribs = _entity_dxfattribs(dxf_doc, entity.header, entity.extrusion)
        modelspace.add_line(entity.start, entity.end, dxfattribs=dxfattribs)
        return True

    if isinstance(entity, Arc):
        dxfattribs = _entity_dxfattribs(dxf_doc, entity.header, entity.extrusion)
        modelspace.add_arc(
            entity.center,
            entity.radius,
            entity.start_angle,
            entity.end_angle,
            dxfattribs=dxfattribs,
        )
        return True

    if isinstance(entity, ThreeDFace):
        dxfattribs = _entity_dxfattribs(dxf_doc, entity.header, thickness=False)
        if entity.flags:
            dxfattribs["invisible_edges"] = entity.flags
        modelspace.add_3dface(list(entity.vertices), dxfattribs=dxfattribs)
        return True

    if isinstance(entity, Hatch):
        return _write_hatch(dxf_doc, modelspace, entity)

    return False


def _write_hatch(dxf_doc: Any, modelspace: Any, entity: Hatch) -> bool:
    if not entity.boundary_paths:
        return False

    dxfattribs = _entity_dxfattribs(dxf_doc, entity.header, entity.extrusion, thickness=False)
    dxfattribs["elevation"] = entity.base_point
    color = entity.header.color
    hatch = modelspace.add_hatch(color=color, dxfattribs=dxfattribs)
    if entity.solid_fill:
        hatch.set_solid_fill(color=color, style=int(entity.style))
    else:
        definition = [
            [line.angle, line.base_point, line.offset, list(line.dashes)]
            for line in entity.pattern_lines
        ]
        hatch.set_pattern_fill(
            entity.pattern_name,
            color=color,
            angle=entity.pattern_angle,
            scale=entity.pattern_scale,
            double=int(entity.pattern_double),
            style=int(entity.style),
            pattern_type=int(entity.pattern_type),
            definition=definition or None,
        )
        if definition:
            # decoded lines are already scaled and rotated
            hatch.set_pattern_definition(definition)

    for path in entity.boundary_paths:
        if isinstance(path, PolylinePath):
            hatch.paths.add_polyline_path(
                list(path.vertices),
                is_closed=path.is_closed,
                flags=path.flags,
            )
            continue
        if isinstance(path, EdgePath):
            _write_edge_path(hatch.paths.add_edge_path(flags=path.flags), path)
            continue
        return False

    if entity.seed_points:
        hatch.set_seed_points(list(entity.seed_points))
    return True


def _write_edge_path(edge_path: Any, path: EdgePath) -> None:
    for edge in path.edges:
        if isinstance(edge, LineEdge):
            edge_path.add_line(edge.start, edge.end)
        elif isinstance(edge, ArcEdge):
            edge_path.add_arc(
                edge.center,
                radius=edge.radius,
                start_angle=edge.start_angle,
                end_angle=edge.end_angle,
                ccw=edge.ccw,
            )
        elif isinstance(edge, EllipseEdge):
            edge_path.add_ellipse(
                edge.center,
                major_axis=edge.major_axis,
                ratio=edge.ratio,
                start_angle=edge.start_angle,
                end_angle=edge.end_angle,
                ccw=edge.ccw,
            )
        elif isinstance(edge, SplineEdge):
            edge_path.add_spline(
                fit_points=list(edge.fit_points) or None,
                control_points=[point[:2] for point in edge.control_points],
                knot_values=list(edge.knots) or None,
                weights=edge.weights if edge.rational else None,
                degree=edge.degree,
                periodic=int(edge.periodic),
                start_tangent=edge.start_tangent,
                end_tangent=edge.end_tangent,
            )
        else:
            raise TypeError(f"unsupported boundary path edge {type(edge).__name__}")


def _entity_dxfattribs(
    dxf_doc: Any,
    header: CommonEntityHeader,
    extrusion: tuple[float, float, float] = DEFAULT_EXTRUSION,
    *,
    thickness: bool = True,
) -> dict[str, Any]:
    attribs: dict[str, Any] = {"layer": header.layer}
    if header.layer not in dxf_doc.layers:
        dxf_doc.layers.add(header.layer)
    if header.linetype != DEFAULT_LINETYPE and header.linetype in dxf_doc.linetypes:
        attribs["linetype"] = header.linetype
    if header.color != BYLAYER:
        attribs["color"] = header.color
    if thickness and header.thickness != 0.0:
        attribs["thickness"] = header.thickness
    if extrusion != DEFAULT_EXTRUSION:
        attribs["extrusion"] = extrusion
    return attribs
