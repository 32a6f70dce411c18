from __future__ import annotations

import dataclasses
import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from .diagnostics import Diagnostics
from .entity import (
    DEFAULT_LAYER,
    DEFAULT_LINETYPE,
    BYLAYER,
    UNASSIGNED_HANDLE,
    Arc,
    Class,
    CommonEntityHeader,
    EndTab,
    Line,
    ThreeDFace,
)
from .errors import CorrectionWarning, StreamError, ValidationError
from .tags import COMMENT, SUBCLASS, GroupCodeRecord, GroupCodeStream, TagWriter, parse_value
from .versions import VersionField, is_field_legal

logger = logging.getLogger(__name__)

ELEVATION = 38


@dataclass(frozen=True)
class FieldSpec:
    name: str
    axis: int | None = None
    convert: Callable[[Any], Any] | None = None


_HEADER_CODES = {
    5: FieldSpec("handle", convert=lambda value: int(value, 16)),
    6: FieldSpec("linetype"),
    8: FieldSpec("layer"),
    39: FieldSpec("thickness"),
    62: FieldSpec("color"),
    67: FieldSpec("paperspace", convert=bool),
}


def _points(name: str, base: int, dims: int = 3) -> dict[int, FieldSpec]:
    return {base + 10 * axis: FieldSpec(name, axis) for axis in range(dims)}


class DecodeContext:
    """State of one entity decode: the stream, the version in force and the
    fields collected so far. ``where`` names the sub-structure being read and
    prefixes every diagnostic."""

    def __init__(
        self,
        stream: GroupCodeStream,
        version: int,
        diagnostics: Diagnostics,
        dxftype: str,
    ) -> None:
        self.stream = stream
        self.version = version
        self.diagnostics = diagnostics
        self.dxftype = dxftype
        self.header: dict[str, Any] = {}
        self.fields: dict[str, Any] = {}
        self.points: dict[str, list[float]] = {}
        self._scope: list[str] = [dxftype]

    @property
    def where(self) -> str:
        return "/".join(self._scope)

    @contextmanager
    def scope(self, label: str) -> Iterator[None]:
        self._scope.append(label)
        try:
            yield
        finally:
            self._scope.pop()

    def warn(self, message: str, record: GroupCodeRecord | None = None, **kwargs: Any) -> None:
        line_number = record.line_number if record is not None else None
        self.diagnostics.warn(self.where, message, line_number=line_number, **kwargs)

    def skip_comments(self) -> None:
        while True:
            record = self.stream.peek()
            if record is None or record.code != COMMENT:
                return
            self.stream.next()
            self.diagnostics.comment(self.where, record.value, line_number=record.line_number)

    def expect(self, code: int) -> GroupCodeRecord:
        """Consume the next record, which must carry ``code``."""
        self.skip_comments()
        record = self.stream.require(self.where)
        if record.code != code:
            raise StreamError(
                f"{self.where}: expected group code {code}, got {record.code}",
                record.line_number,
            )
        return record

    def expect_count(self, code: int) -> int:
        record = self.expect(code)
        try:
            count = int(record.value)
        except ValueError as exc:
            raise StreamError(
                f"{self.where}: invalid count {record.value!r} for group code {code}",
                record.line_number,
                exc,
            ) from exc
        if count < 0:
            raise StreamError(f"{self.where}: negative count {count}", record.line_number)
        return count

    def expect_value(self, code: int, default: Any = 0.0) -> Any:
        record = self.expect(code)
        return self._parse(record, default)

    def optional_value(self, code: int, default: Any) -> Any:
        self.skip_comments()
        if self.stream.peek_code() != code:
            return default
        return self._parse(self.stream.next(), default)

    def _parse(self, record: GroupCodeRecord, default: Any) -> Any:
        try:
            return parse_value(record.code, record.value)
        except ValueError:
            self.warn(
                f"invalid value {record.value!r} for group code {record.code}", record
            )
            return default


class EntityCodec:
    """Decode/encode strategy for one entity type.

    Decoding starts right after the ``0 <TYPE>`` record and stops, without
    consuming it, at the next group code 0. Records are dispatched through
    ``codes``; unknown codes and unparsable values are reported and skipped.
    """

    dxftype: str = ""
    entity_class: type = object
    has_header = True
    codes: dict[int, FieldSpec] = {}
    # the point whose Z a pre-R12 elevation (group 38) replaces
    elevation_point: str | None = None
    ignored_codes: frozenset[int] = frozenset()

    def decode(
        self,
        stream: GroupCodeStream,
        version: int,
        diagnostics: Diagnostics,
    ) -> Any:
        ctx = DecodeContext(stream, version, diagnostics, self.dxftype)
        while True:
            record = stream.peek()
            if record is None:
                raise StreamError(
                    f"unexpected end of input while reading {self.dxftype}",
                    stream.line_number,
                )
            if record.code == 0:
                break
            stream.next()
            self.decode_record(ctx, record)
        return self.build(ctx)

    def decode_record(self, ctx: DecodeContext, record: GroupCodeRecord) -> None:
        code = record.code
        if code == COMMENT:
            ctx.diagnostics.comment(ctx.where, record.value, line_number=record.line_number)
            return
        if code == SUBCLASS:
            logger.debug("%s: subclass marker %s", ctx.where, record.value)
            return
        if code in self.ignored_codes:
            return
        if self.decode_structured(ctx, record):
            return
        if (
            code == ELEVATION
            and self.elevation_point is not None
            and is_field_legal(VersionField.ELEVATION, ctx.version)
        ):
            self._assign(ctx, FieldSpec(self.elevation_point, 2), record)
            return
        spec = self.codes.get(code)
        if spec is None and self.has_header:
            spec = _HEADER_CODES.get(code)
            if spec is not None:
                self._assign_header(ctx, spec, record)
                return
        if spec is None:
            ctx.warn(f"unknown group code {code} ({record.value!r})", record)
            return
        self._assign(ctx, spec, record)

    def decode_structured(self, ctx: DecodeContext, record: GroupCodeRecord) -> bool:
        """Hook for count-prefixed sub-structures; True when ``record`` was handled."""
        return False

    def _convert(self, ctx: DecodeContext, spec: FieldSpec, record: GroupCodeRecord) -> Any:
        try:
            value = parse_value(record.code, record.value)
            return spec.convert(value) if spec.convert is not None else value
        except ValueError:
            ctx.warn(f"invalid value {record.value!r} for group code {record.code}", record)
            return None

    def _assign(self, ctx: DecodeContext, spec: FieldSpec, record: GroupCodeRecord) -> None:
        value = self._convert(ctx, spec, record)
        if value is None:
            return
        if spec.axis is None:
            ctx.fields[spec.name] = value
            return
        point = ctx.points.get(spec.name)
        if point is None:
            point = list(self.default(spec.name))
            ctx.points[spec.name] = point
        point[spec.axis] = value

    def _assign_header(self, ctx: DecodeContext, spec: FieldSpec, record: GroupCodeRecord) -> None:
        value = self._convert(ctx, spec, record)
        if value is None:
            return
        if spec.name == "layer" and value == "":
            ctx.warn(
                f"empty layer string, entity relocated to layer {DEFAULT_LAYER}",
                record,
                category=CorrectionWarning,
            )
            value = DEFAULT_LAYER
        ctx.header[spec.name] = value

    def default(self, name: str) -> Any:
        for item in dataclasses.fields(self.entity_class):
            if item.name == name:
                if item.default is not dataclasses.MISSING:
                    return item.default
                return item.default_factory()
        raise KeyError(name)

    def build(self, ctx: DecodeContext) -> Any:
        kwargs = dict(ctx.fields)
        for name, point in ctx.points.items():
            kwargs[name] = tuple(point)
        if self.has_header:
            kwargs["header"] = CommonEntityHeader(version=ctx.version, **ctx.header)
        return self.entity_class(**kwargs)

    # encoding

    def encode(self, entity: Any, version: int, diagnostics: Diagnostics) -> list[tuple[int, str]]:
        header = self.validate(entity, diagnostics)
        writer = TagWriter(version)
        writer.write(0, self.dxftype)
        if header is not None:
            write_header(writer, header)
        self.write_fields(writer, entity, diagnostics)
        return writer.tags

    def write_fields(self, writer: TagWriter, entity: Any, diagnostics: Diagnostics) -> None:
        raise NotImplementedError

    def validate(self, entity: Any, diagnostics: Diagnostics) -> CommonEntityHeader | None:
        """Check ``entity`` before it is written and return the header to write.

        Header strings with surrounding blanks are stripped with a warning,
        since the reader strips every value.
        """
        header = entity.header
        for name in ("layer", "linetype"):
            value = getattr(header, name)
            self.check_text(entity, f"header.{name}", value, strict=False)
            if value != value.strip():
                diagnostics.warn(
                    self.dxftype,
                    f"blanks around {name} {value!r} removed",
                    category=CorrectionWarning,
                )
                header = dataclasses.replace(header, **{name: value.strip()})
        if header.layer == "":
            diagnostics.warn(
                self.dxftype,
                f"empty layer string for the {self.dxftype} entity with id-code "
                f"{header.handle:X}, relocated to layer {DEFAULT_LAYER}",
                category=CorrectionWarning,
            )
            header = dataclasses.replace(header, layer=DEFAULT_LAYER)
        return header

    def invalid(self, entity: Any, field: str, message: str) -> ValidationError:
        handle = entity.header.handle if self.has_header else UNASSIGNED_HANDLE
        return ValidationError(message, dxftype=self.dxftype, field=field, handle=handle)

    def check_text(self, entity: Any, field: str, value: str, *, strict: bool = True) -> None:
        """A value line holds one line of text; ``strict`` also rejects blanks around it."""
        if "\n" in value or "\r" in value:
            raise self.invalid(entity, field, f"line break in {value!r}")
        if strict and value != value.strip():
            raise self.invalid(entity, field, f"blanks around {value!r} would be lost")

    def check_finite(self, entity: Any, *fields: str) -> None:
        for field in fields:
            value = getattr(entity, field)
            if not math.isfinite(value):
                raise self.invalid(entity, field, f"{field} must be finite, got {value}")


def write_header(writer: TagWriter, header: CommonEntityHeader) -> None:
    if header.handle != UNASSIGNED_HANDLE:
        writer.write_handle(5, header.handle)
    writer.write_subclass("AcDbEntity")
    if header.paperspace:
        writer.write(67, 1)
    writer.write(8, header.layer)
    if header.linetype != DEFAULT_LINETYPE:
        writer.write(6, header.linetype)
    if header.color != BYLAYER:
        writer.write(62, header.color)


def write_thickness(writer: TagWriter, header: CommonEntityHeader) -> None:
    if header.thickness != 0.0:
        writer.write(39, header.thickness)


class ArcCodec(EntityCodec):
    dxftype = "ARC"
    entity_class = Arc
    elevation_point = "center"
    codes = {
        **_points("center", 10),
        40: FieldSpec("radius"),
        50: FieldSpec("start_angle"),
        51: FieldSpec("end_angle"),
        **_points("extrusion", 210),
    }

    def validate(self, entity: Arc, diagnostics: Diagnostics) -> CommonEntityHeader:
        self.check_finite(entity, "radius", "start_angle", "end_angle")
        if entity.start_angle == entity.end_angle:
            raise self.invalid(entity, "end_angle", "start angle and end angle are identical")
        for field in ("start_angle", "end_angle"):
            angle = getattr(entity, field)
            if angle > 360.0:
                raise self.invalid(entity, field, f"angle {angle} is greater than 360 degrees")
            if angle < 0.0:
                raise self.invalid(entity, field, f"angle {angle} is lesser than 0 degrees")
        if entity.radius <= 0.0:
            raise self.invalid(entity, "radius", f"radius must be positive, got {entity.radius}")
        return super().validate(entity, diagnostics)

    def write_fields(self, writer: TagWriter, entity: Arc, diagnostics: Diagnostics) -> None:
        writer.write_subclass("AcDbCircle")
        write_thickness(writer, entity.header)
        writer.write_point(10, entity.center)
        writer.write(40, entity.radius)
        writer.write_extrusion(entity.extrusion)
        writer.write_subclass("AcDbArc")
        writer.write(50, entity.start_angle)
        writer.write(51, entity.end_angle)


class LineCodec(EntityCodec):
    dxftype = "LINE"
    entity_class = Line
    elevation_point = "start"
    codes = {
        **_points("start", 10),
        **_points("end", 11),
        **_points("extrusion", 210),
    }

    def decode_record(self, ctx: DecodeContext, record: GroupCodeRecord) -> None:
        super().decode_record(ctx, record)
        if record.code == ELEVATION and is_field_legal(VersionField.ELEVATION, ctx.version):
            start = ctx.points.get("start")
            if start is None:
                # unparsable elevation, already reported
                return
            # elevation applies to both end points
            end = ctx.points.setdefault("end", list(self.default("end")))
            end[2] = start[2]

    def write_fields(self, writer: TagWriter, entity: Line, diagnostics: Diagnostics) -> None:
        writer.write_subclass("AcDbLine")
        write_thickness(writer, entity.header)
        writer.write_point(10, entity.start)
        writer.write_point(11, entity.end)
        writer.write_extrusion(entity.extrusion)


class ThreeDFaceCodec(EntityCodec):
    dxftype = "3DFACE"
    entity_class = ThreeDFace
    codes = {
        **_points("corner0", 10),
        **_points("corner1", 11),
        **_points("corner2", 12),
        **_points("corner3", 13),
        70: FieldSpec("flags"),
    }

    def default(self, name: str) -> Any:
        if name.startswith("corner"):
            return (0.0, 0.0, 0.0)
        return super().default(name)

    def build(self, ctx: DecodeContext) -> ThreeDFace:
        corners = [
            tuple(ctx.points.pop(f"corner{index}", self.default(f"corner{index}")))
            for index in range(4)
        ]
        ctx.fields["vertices"] = tuple(corners)
        return super().build(ctx)

    def write_fields(self, writer: TagWriter, entity: ThreeDFace, diagnostics: Diagnostics) -> None:
        writer.write_subclass("AcDbFace")
        write_thickness(writer, entity.header)
        for index, corner in enumerate(entity.vertices):
            writer.write_point(10 + index, corner)
        if entity.flags != 0:
            writer.write(70, entity.flags)


class ClassCodec(EntityCodec):
    dxftype = "CLASS"
    entity_class = Class
    has_header = False
    codes = {
        1: FieldSpec("record_name"),
        2: FieldSpec("class_name"),
        3: FieldSpec("app_name"),
        90: FieldSpec("proxy_flags"),
        280: FieldSpec("was_a_proxy", convert=bool),
        281: FieldSpec("is_an_entity", convert=bool),
    }
    # instance count, R2004 and later
    ignored_codes = frozenset({91})

    def validate(self, entity: Class, diagnostics: Diagnostics) -> None:
        for field in ("record_name", "class_name", "app_name"):
            self.check_text(entity, field, getattr(entity, field))

    def write_fields(self, writer: TagWriter, entity: Class, diagnostics: Diagnostics) -> None:
        writer.write(1, entity.record_name)
        writer.write(2, entity.class_name)
        writer.write(3, entity.app_name)
        writer.write(90, entity.proxy_flags)
        writer.write(280, int(entity.was_a_proxy))
        writer.write(281, int(entity.is_an_entity))


class EndTabCodec(EntityCodec):
    dxftype = "ENDTAB"
    entity_class = EndTab
    has_header = False
    codes = {}

    def validate(self, entity: EndTab, diagnostics: Diagnostics) -> None:
        # written by the document as the TABLE name
        self.check_text(entity, "table_name", entity.table_name)

    def write_fields(self, writer: TagWriter, entity: EndTab, diagnostics: Diagnostics) -> None:
        pass
