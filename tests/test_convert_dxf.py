from __future__ import annotations

from pathlib import Path

import pytest

import tagdxf
import tagdxf.convert as convert_module
from tagdxf.entity import (
    Arc,
    ArcEdge,
    CommonEntityHeader,
    EdgePath,
    EllipseEdge,
    Hatch,
    Line,
    LineEdge,
    PatternDefLine,
    PolylinePath,
    SplineEdge,
    ThreeDFace,
)
from tagdxf.versions import AcadVersion
from tests._dxf_helpers import dxf_entities_of_type, group_float


def _drawing() -> tagdxf.Drawing:
    hatch = Hatch(
        header=CommonEntityHeader(layer="fills", color=3),
        pattern_name="USER",
        solid_fill=False,
        pattern_lines=[PatternDefLine(angle=45.0, base_point=(0, 0), offset=(-0.7, 0.7), dashes=(1.0, -0.5))],
        boundary_paths=[
            PolylinePath(vertices=[(0, 0), (10, 0), (10, 10), (0, 10)]),
            EdgePath(
                edges=[
                    LineEdge((20, 0), (24, 0)),
                    ArcEdge(center=(22, 0), radius=2.0, start_angle=0.0, end_angle=180.0),
                ]
            ),
            EdgePath(
                edges=[
                    EllipseEdge(center=(40, 0), major_axis=(4, 0), ratio=0.5),
                ]
            ),
            EdgePath(
                edges=[
                    SplineEdge(
                        degree=3,
                        knots=(0, 0, 0, 0, 1, 1, 1, 1),
                        control_points=[(50, 0), (51, 2), (53, 2), (54, 0)],
                    ),
                    LineEdge((54, 0), (50, 0)),
                ]
            ),
        ],
        seed_points=[(5, 5)],
    )
    return tagdxf.Drawing(
        version=AcadVersion.R2000,
        entities=(
            Line(header=CommonEntityHeader(layer="walls"), start=(0, 0, 0), end=(3, 4, 0)),
            Arc(center=(1, 1, 0), radius=2.0, start_angle=30.0, end_angle=120.0),
            ThreeDFace(vertices=[(0, 0, 0), (1, 0, 0), (1, 1, 1)]),
            hatch,
        ),
    )


def test_to_dxf_writes_all_entity_kinds(tmp_path: Path) -> None:
    ezdxf = pytest.importorskip("ezdxf")
    output = tmp_path / "all.dxf"

    result = tagdxf.to_dxf(_drawing(), str(output))

    assert result.total_entities == 4
    assert result.written_entities == 4
    assert result.skipped_entities == 0
    doc = ezdxf.readfile(str(output))
    msp = doc.modelspace()
    assert len(msp.query("LINE")) == 1
    assert len(msp.query("ARC")) == 1
    assert len(msp.query("3DFACE")) == 1
    hatches = msp.query("HATCH")
    assert len(hatches) == 1
    hatch = hatches[0]
    assert len(list(hatch.paths)) == 4
    assert hatch.dxf.solid_fill == 0
    assert hatch.dxf.layer == "fills"
    assert "walls" in doc.layers


def test_to_dxf_keeps_arc_angles(tmp_path: Path) -> None:
    pytest.importorskip("ezdxf")
    output = tmp_path / "arc.dxf"

    result = _drawing().export_dxf(str(output), types="ARC")

    assert result.total_entities == 1
    arcs = dxf_entities_of_type(output, "ARC")
    assert len(arcs) == 1
    assert abs(group_float(arcs[0], "50") - 30.0) < 1.0e-6
    assert abs(group_float(arcs[0], "51") - 120.0) < 1.0e-6
    assert abs(group_float(arcs[0], "40") - 2.0) < 1.0e-6


def test_to_dxf_reads_source_files(tmp_path: Path) -> None:
    pytest.importorskip("ezdxf")
    source = tmp_path / "source.dxf"
    tagdxf.write(source, _drawing().entities, AcadVersion.R2000)
    output = tmp_path / "converted.dxf"

    result = tagdxf.to_dxf(str(source), str(output), types="LINE HATCH", dxf_version="R2018")

    assert result.source_path == str(source)
    assert result.total_entities == 2
    assert result.written_entities == 2
    assert len(dxf_entities_of_type(output, "LINE")) == 1


def test_to_dxf_strict_raises_for_skipped_entities(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    pytest.importorskip("ezdxf")
    monkeypatch.setattr(
        convert_module,
        "_write_entity_to_modelspace_unsafe",
        lambda _doc, _msp, entity: entity.dxftype != "HATCH",
    )

    lenient = tagdxf.to_dxf(_drawing(), str(tmp_path / "lenient.dxf"))
    assert lenient.skipped_by_type == {"HATCH": 1}
    with pytest.raises(ValueError, match="HATCH:1"):
        tagdxf.to_dxf(_drawing(), str(tmp_path / "strict.dxf"), strict=True)


def test_hatch_without_paths_is_skipped(tmp_path: Path) -> None:
    pytest.importorskip("ezdxf")
    drawing = tagdxf.Drawing(version=AcadVersion.R2000, entities=(Hatch(),))

    result = tagdxf.to_dxf(drawing, str(tmp_path / "empty.dxf"))

    assert result.skipped_by_type == {"HATCH": 1}
