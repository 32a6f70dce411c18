from typing import Sequence

from .convert import ConvertResult, to_dxf
from .diagnostics import Diagnostic, Diagnostics
from .document import Drawing, WriteResult, dump, dumps, load, loads, read, write
from .entity import (
    Arc,
    ArcEdge,
    BoundaryPathFlag,
    Class,
    CommonEntityHeader,
    EdgePath,
    EdgeType,
    EllipseEdge,
    EndTab,
    Entity,
    Hatch,
    HatchStyle,
    Line,
    LineEdge,
    PatternDefLine,
    PatternType,
    PolylinePath,
    SplineEdge,
    ThreeDFace,
)
from .errors import (
    CommentNotice,
    CorrectionWarning,
    DxfError,
    DxfWarning,
    StreamError,
    UnknownTagWarning,
    ValidationError,
)
from .registry import DEFAULT_REGISTRY, CodecRegistry, decode_entity, encode_entity, read_entities
from .tags import GroupCodeRecord, GroupCodeStream
from .versions import AcadVersion, VersionField, is_field_legal, parse_version

__all__ = [
    "read",
    "load",
    "loads",
    "write",
    "dump",
    "dumps",
    "Drawing",
    "WriteResult",
    "to_dxf",
    "ConvertResult",
    "decode_entity",
    "encode_entity",
    "read_entities",
    "CodecRegistry",
    "DEFAULT_REGISTRY",
    "GroupCodeRecord",
    "GroupCodeStream",
    "AcadVersion",
    "VersionField",
    "is_field_legal",
    "parse_version",
    "Diagnostic",
    "Diagnostics",
    "Entity",
    "CommonEntityHeader",
    "Arc",
    "Line",
    "ThreeDFace",
    "Class",
    "EndTab",
    "Hatch",
    "HatchStyle",
    "PatternType",
    "BoundaryPathFlag",
    "PolylinePath",
    "EdgePath",
    "EdgeType",
    "LineEdge",
    "ArcEdge",
    "EllipseEdge",
    "SplineEdge",
    "PatternDefLine",
    "DxfError",
    "StreamError",
    "ValidationError",
    "DxfWarning",
    "UnknownTagWarning",
    "CorrectionWarning",
    "CommentNotice",
]


def main(argv: Sequence[str] | None = None) -> int:
    from tagdxf.cli import main as cli_main

    return cli_main(argv)
