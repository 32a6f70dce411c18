import tagdxf
from tagdxf import ArcEdge, EdgePath, Hatch, LineEdge, PolylinePath


hatch = Hatch(
    boundary_paths=[
        PolylinePath(vertices=[(0, 0), (10, 0), (10, 10), (0, 10)]),
        EdgePath(
            edges=[
                LineEdge((20, 0), (24, 0)),
                ArcEdge(center=(22, 0), radius=2.0, start_angle=0.0, end_angle=180.0),
            ]
        ),
    ],
)
written = tagdxf.write("/tmp/hatch_r2000.dxf", [hatch], "R2000")
print(written.written_entities, written.warnings)

result = tagdxf.to_dxf(
    "/tmp/hatch_r2000.dxf",
    "/tmp/hatch_r2000_out.dxf",
    types="HATCH",
    dxf_version="R2010",
)
print(result)
