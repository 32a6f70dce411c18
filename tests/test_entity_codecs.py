from __future__ import annotations

import pytest

from tagdxf.diagnostics import Diagnostics
from tagdxf.entity import BYBLOCK, Arc, Class, CommonEntityHeader, EndTab, Hatch, Line, ThreeDFace
from tagdxf.errors import CommentNotice, CorrectionWarning, StreamError, UnknownTagWarning, ValidationError
from tagdxf.registry import decode_entity, encode_entity
from tagdxf.tags import GroupCodeStream
from tagdxf.versions import AcadVersion
from tests._dxf_helpers import stream_of, tag_codes, tag_pairs

ARC_TAGS = [
    (5, "1F"),
    (100, "AcDbEntity"),
    (8, "walls"),
    (100, "AcDbCircle"),
    (10, "1.5"),
    (20, "2.5"),
    (30, "0.0"),
    (40, "3.0"),
    (100, "AcDbArc"),
    (50, "10.0"),
    (51, "200.0"),
]
EXPECTED_ARC = Arc(
    header=CommonEntityHeader(handle=0x1F, layer="walls"),
    center=(1.5, 2.5, 0.0),
    radius=3.0,
    start_angle=10.0,
    end_angle=200.0,
)


def _decode(dxftype: str, *tags, version=AcadVersion.R2000, diagnostics=None):  # noqa: ANN001, ANN202
    stream = stream_of(*tags, (0, "ENDSEC"))
    entity = decode_entity(stream, dxftype, version=version, diagnostics=diagnostics)
    # the terminating record stays in the stream
    assert stream.peek().value == "ENDSEC"
    return entity


def test_decode_arc() -> None:
    diagnostics = Diagnostics()

    arc = _decode("ARC", *ARC_TAGS, diagnostics=diagnostics)

    assert arc == EXPECTED_ARC
    assert arc.handle == 0x1F
    assert arc.extrusion == (0.0, 0.0, 1.0)
    assert arc.header.version == AcadVersion.R2000
    assert len(diagnostics) == 0


def test_decode_arc_with_comment_reports_one_warning() -> None:
    diagnostics = Diagnostics()
    tags = ARC_TAGS[:4] + [(999, "drawn by hand")] + ARC_TAGS[4:]

    arc = _decode("ARC", *tags, diagnostics=diagnostics)

    assert arc == EXPECTED_ARC
    assert len(diagnostics) == 1
    assert diagnostics.warnings[0].category is CommentNotice
    assert diagnostics.comments == ("drawn by hand",)


def test_decode_arc_with_undefined_group_code_reports_one_warning() -> None:
    diagnostics = Diagnostics()
    tags = ARC_TAGS[:6] + [(9999, "mystery")] + ARC_TAGS[6:]

    arc = _decode("ARC", *tags, diagnostics=diagnostics)

    assert arc == EXPECTED_ARC
    assert len(diagnostics) == 1
    warning = diagnostics.warnings[0]
    assert warning.category is UnknownTagWarning
    assert "9999" in warning.message
    assert warning.line_number == 13


def test_unparsable_value_is_skipped_with_warning() -> None:
    diagnostics = Diagnostics()
    tags = [tag if tag[0] != 40 else (40, "wide") for tag in ARC_TAGS]

    arc = _decode("ARC", *tags, diagnostics=diagnostics)

    assert arc.radius == 0.0
    assert arc.start_angle == 10.0
    assert [item.category for item in diagnostics.warnings] == [UnknownTagWarning]


def test_empty_layer_is_corrected_on_decode() -> None:
    diagnostics = Diagnostics()
    tags = [tag if tag[0] != 8 else (8, "") for tag in ARC_TAGS]

    arc = _decode("ARC", *tags, diagnostics=diagnostics)

    assert arc.header.layer == "0"
    assert diagnostics.of_category(CorrectionWarning)


def test_end_of_input_inside_entity_raises_stream_error() -> None:
    stream = stream_of(*ARC_TAGS)

    with pytest.raises(StreamError, match="ARC"):
        decode_entity(stream, "ARC")


def test_header_fields_are_decoded() -> None:
    line = _decode(
        "LINE",
        (5, "A0"),
        (67, "1"),
        (8, "hidden"),
        (6, "DASHED"),
        (62, "3"),
        (39, "0.5"),
        (10, "0.0"),
        (20, "0.0"),
        (30, "0.0"),
        (11, "4.0"),
        (21, "5.0"),
        (31, "6.0"),
    )

    assert line.header == CommonEntityHeader(
        handle=0xA0,
        linetype="DASHED",
        layer="hidden",
        color=3,
        paperspace=True,
        thickness=0.5,
    )
    assert line.end == (4.0, 5.0, 6.0)


def test_elevation_overrides_z_before_r12() -> None:
    arc = _decode(
        "ARC",
        (8, "0"),
        (10, "1.0"),
        (20, "2.0"),
        (38, "7.5"),
        (40, "1.0"),
        (50, "0.0"),
        (51, "90.0"),
        version=AcadVersion.R11,
    )
    line = _decode(
        "LINE",
        (8, "0"),
        (10, "0.0"),
        (20, "0.0"),
        (11, "1.0"),
        (21, "1.0"),
        (38, "2.5"),
        version=AcadVersion.R11,
    )

    assert arc.center == (1.0, 2.0, 7.5)
    assert line.start == (0.0, 0.0, 2.5)
    assert line.end == (1.0, 1.0, 2.5)


def test_unparsable_line_elevation_is_skipped_with_warning() -> None:
    diagnostics = Diagnostics()

    line = _decode("LINE", (38, "abc"), version=AcadVersion.R11, diagnostics=diagnostics)

    assert line.start == (0.0, 0.0, 0.0)
    assert line.end == (0.0, 0.0, 0.0)
    assert [item.category for item in diagnostics.warnings] == [UnknownTagWarning]
    assert "invalid value 'abc' for group code 38" in diagnostics.warnings[0].message


def test_elevation_is_unknown_from_r12_on() -> None:
    diagnostics = Diagnostics()

    arc = _decode(
        "ARC",
        (10, "1.0"),
        (20, "2.0"),
        (38, "7.5"),
        (40, "1.0"),
        (51, "90.0"),
        diagnostics=diagnostics,
    )

    assert arc.center == (1.0, 2.0, 0.0)
    assert len(diagnostics.of_category(UnknownTagWarning)) == 1


def test_encode_arc_in_fixed_order() -> None:
    arc = Arc(
        header=CommonEntityHeader(handle=0x2A, layer="L1"),
        center=(1.0, 2.0, 3.0),
        radius=4.0,
        start_angle=0.0,
        end_angle=90.0,
    )

    text = encode_entity(arc, version=AcadVersion.R2000)

    assert text.startswith("  0\nARC\n  5\n2A\n100\nAcDbEntity\n  8\nL1\n")
    assert tag_codes(text) == [0, 5, 100, 8, 100, 10, 20, 30, 40, 210, 220, 230, 100, 50, 51]
    assert tag_pairs(text)[-3:] == [(100, "AcDbArc"), (50, "0.0"), (51, "90.0")]
    assert tag_codes(encode_entity(arc, version=AcadVersion.R12)) == [
        0, 5, 8, 10, 20, 30, 40, 210, 220, 230, 50, 51,
    ]
    assert tag_codes(encode_entity(arc, version=AcadVersion.R11)) == [
        0, 5, 8, 10, 20, 30, 40, 50, 51,
    ]


def test_encode_omits_default_header_fields() -> None:
    line = Line(start=(0.0, 0.0, 0.0), end=(1.0, 0.0, 0.0))
    styled = Line(
        header=CommonEntityHeader(linetype="DASHED", color=1, paperspace=True, thickness=2.0),
        start=(0.0, 0.0, 0.0),
        end=(1.0, 0.0, 0.0),
    )

    assert tag_codes(encode_entity(line, version=AcadVersion.R12)) == [
        0, 8, 10, 20, 30, 11, 21, 31, 210, 220, 230,
    ]
    assert tag_codes(encode_entity(styled, version=AcadVersion.R12)) == [
        0, 67, 8, 6, 62, 39, 10, 20, 30, 11, 21, 31, 210, 220, 230,
    ]


@pytest.mark.parametrize(
    ("changes", "field"),
    [
        ({"start_angle": 45.0, "end_angle": 45.0}, "end_angle"),
        ({"radius": 0.0}, "radius"),
        ({"start_angle": 400.0}, "start_angle"),
        ({"end_angle": -1.0}, "end_angle"),
        ({"start_angle": float("nan")}, "start_angle"),
        ({"end_angle": float("nan")}, "end_angle"),
        ({"radius": float("inf")}, "radius"),
    ],
)
def test_encode_rejects_invalid_arcs(changes, field) -> None:  # noqa: ANN001
    values = {"radius": 1.0, "start_angle": 0.0, "end_angle": 90.0, **changes}
    arc = Arc(header=CommonEntityHeader(handle=7), **values)

    with pytest.raises(ValidationError) as exc_info:
        encode_entity(arc)

    assert exc_info.value.field == field
    assert exc_info.value.handle == 7
    assert exc_info.value.dxftype == "ARC"


def test_encode_arc_with_empty_layer_uses_default_layer() -> None:
    diagnostics = Diagnostics()
    arc = Arc(header=CommonEntityHeader(layer=""), radius=1.0, end_angle=90.0)

    text = encode_entity(arc, diagnostics=diagnostics)

    assert (8, "0") in tag_pairs(text)
    assert [item.category for item in diagnostics.warnings] == [CorrectionWarning]


@pytest.mark.parametrize(
    ("entity", "field"),
    [
        (Arc(header=CommonEntityHeader(handle=3, layer="a\nb"), radius=1.0, end_angle=90.0), "header.layer"),
        (Line(header=CommonEntityHeader(handle=3, linetype="DASHED\r")), "header.linetype"),
        (Hatch(header=CommonEntityHeader(handle=3), pattern_name="ANSI\n31"), "pattern_name"),
        (Class("A\nB", "AcDbA", "App", 0, False, False), "record_name"),
        (EndTab(" LAYER"), "table_name"),
    ],
)
def test_encode_rejects_text_that_cannot_be_read_back(entity, field) -> None:  # noqa: ANN001
    with pytest.raises(ValidationError) as exc_info:
        encode_entity(entity)

    assert exc_info.value.field == field
    assert exc_info.value.dxftype == entity.dxftype


def test_encode_strips_blanks_around_layer() -> None:
    diagnostics = Diagnostics()
    arc = Arc(header=CommonEntityHeader(layer=" walls "), radius=1.0, end_angle=90.0)

    text = encode_entity(arc, diagnostics=diagnostics)

    assert (8, "walls") in tag_pairs(text)
    assert [item.category for item in diagnostics.warnings] == [CorrectionWarning]
    assert _round_trip(arc).header.layer == "walls"


def test_blank_layer_is_stripped_then_defaulted() -> None:
    diagnostics = Diagnostics()
    line = Line(header=CommonEntityHeader(layer="  "))

    text = encode_entity(line, diagnostics=diagnostics)

    assert (8, "0") in tag_pairs(text)
    assert [item.category for item in diagnostics.warnings] == [CorrectionWarning, CorrectionWarning]


def test_byblock_color_is_written() -> None:
    line = Line(header=CommonEntityHeader(color=BYBLOCK))

    text = encode_entity(line, version=AcadVersion.R12)

    assert (62, "0") in tag_pairs(text)
    assert _round_trip(line, AcadVersion.R12).header.color == BYBLOCK


def test_three_d_face_round_trip() -> None:
    face = ThreeDFace(
        header=CommonEntityHeader(handle=0x10),
        vertices=[(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (1.0, 1.0, 0.5)],
        flags=0b0101,
    )

    text = encode_entity(face, version=AcadVersion.R2000)

    assert face.vertices[3] == face.vertices[2]
    assert face.is_edge_invisible(0) and not face.is_edge_invisible(1)
    assert tag_codes(text) == [0, 5, 100, 8, 100] + [10 + i + 10 * axis for i in range(4) for axis in range(3)] + [70]
    assert _round_trip(face) == face


def _round_trip(entity, version=AcadVersion.R2000):  # noqa: ANN001, ANN202
    stream = GroupCodeStream.from_text(encode_entity(entity, version=version) + "  0\nEOF\n")
    record = stream.next()
    assert record.value == entity.dxftype
    return decode_entity(stream, record.value, version=version)


@pytest.mark.parametrize("version", [AcadVersion.R12, AcadVersion.R2000, AcadVersion.R2018])
def test_flat_entities_round_trip(version) -> None:  # noqa: ANN001
    entities = [
        EXPECTED_ARC,
        Arc(center=(0.1, 0.2, 0.3), radius=1 / 3, start_angle=359.5, end_angle=0.5, extrusion=(0, 0, -1)),
        Line(
            header=CommonEntityHeader(handle=0x33, layer="A", color=5, thickness=1.25),
            start=(1e-9, -2.5, 3.0),
            end=(4.0, 5.0, 6.0),
        ),
        ThreeDFace(vertices=[(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)], flags=8),
        Class(
            record_name="ACDBDICTIONARYWDFLT",
            class_name="AcDbDictionaryWithDefault",
            app_name="ObjectDBX Classes",
            proxy_flags=0,
            was_a_proxy=False,
            is_an_entity=False,
        ),
        EndTab(),
    ]

    for entity in entities:
        assert _round_trip(entity, version) == entity


def test_encode_is_idempotent_over_decode() -> None:
    first = _decode("ARC", *ARC_TAGS)
    again = _round_trip(first)

    assert again == first
    assert encode_entity(again) == encode_entity(first)


def test_class_ignores_instance_count() -> None:
    diagnostics = Diagnostics()

    record = _decode(
        "CLASS",
        (1, "WIPEOUTVARIABLES"),
        (2, "AcDbWipeoutVariables"),
        (3, "WipeOut"),
        (90, "1"),
        (91, "0"),
        (280, "0"),
        (281, "0"),
        diagnostics=diagnostics,
    )

    assert record == Class("WIPEOUTVARIABLES", "AcDbWipeoutVariables", "WipeOut", 1, False, False)
    assert len(diagnostics) == 0
