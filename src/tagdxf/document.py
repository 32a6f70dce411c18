from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import IO, Iterable, Iterator

from .diagnostics import Diagnostic, Diagnostics
from .entity import Class, EndTab, Entity
from .errors import StreamError, ValidationError
from .registry import DEFAULT_REGISTRY, CodecRegistry, read_entities
from .tags import COMMENT, GroupCodeStream, format_tags
from .versions import DEFAULT_VERSION, AcadVersion, acadver, parse_version

logger = logging.getLogger(__name__)

_BLOCK_MARKERS = ("BLOCK", "ENDBLK")


@dataclass(frozen=True)
class Drawing:
    version: AcadVersion
    entities: tuple[Entity, ...] = ()
    classes: tuple[Class, ...] = ()
    tables: tuple[EndTab, ...] = ()
    warnings: tuple[Diagnostic, ...] = ()
    comments: tuple[str, ...] = ()
    path: str | None = None

    def query(self, types: str | Iterable[str] | None = None) -> Iterator[Entity]:
        selected = _normalize_types(types)
        for entity in self.entities:
            if selected is None or entity.dxftype in selected:
                yield entity

    def dumps(self, version: int | str | None = None, **kwargs) -> "WriteResult":
        return dumps(self, self.version if version is None else version, **kwargs)

    def export_dxf(self, output_path: str, **kwargs):
        from .convert import to_dxf

        return to_dxf(self, output_path, **kwargs)


@dataclass(frozen=True)
class WriteResult:
    text: str
    total_entities: int
    written_entities: int
    skipped_entities: int
    skipped: tuple[str, ...] = ()
    warnings: tuple[Diagnostic, ...] = ()
    skipped_by_type: dict[str, int] = field(default_factory=dict)


def _normalize_types(types: str | Iterable[str] | None) -> set[str] | None:
    if types is None:
        return None
    if isinstance(types, str):
        tokens = re.split(r"[,\s]+", types.strip())
    else:
        tokens = list(types)
    normalized = [token.strip().upper() for token in tokens if token and token.strip()]
    if not normalized or any(token in {"*", "ALL"} for token in normalized):
        return None
    selected = set()
    for token in normalized:
        if any(ch in token for ch in "*?[]"):
            selected.update(name for name in DEFAULT_REGISTRY if fnmatch.fnmatchcase(name, token))
        else:
            selected.add(token)
    return selected


# reading


def read(
    path: str | Path,
    version: int | str | None = None,
    *,
    encoding: str = "utf-8",
    registry: CodecRegistry = DEFAULT_REGISTRY,
) -> Drawing:
    file_path = Path(path)
    with file_path.open("r", encoding=encoding) as handle:
        stream = GroupCodeStream(handle, name=str(file_path))
        drawing = _read_drawing(stream, version, registry)
    return replace(drawing, path=str(file_path))


def load(
    stream: IO[str],
    version: int | str | None = None,
    *,
    registry: CodecRegistry = DEFAULT_REGISTRY,
) -> Drawing:
    name = getattr(stream, "name", "<stream>")
    return _read_drawing(GroupCodeStream(stream, name=str(name)), version, registry)


def loads(
    text: str,
    version: int | str | None = None,
    *,
    registry: CodecRegistry = DEFAULT_REGISTRY,
) -> Drawing:
    return _read_drawing(GroupCodeStream.from_text(text), version, registry)


class _DrawingReader:
    def __init__(
        self,
        stream: GroupCodeStream,
        version: int | str | None,
        registry: CodecRegistry,
    ) -> None:
        self.stream = stream
        self.registry = registry
        self.diagnostics = Diagnostics()
        self.fixed_version = version is not None
        self.version = parse_version(version) if version is not None else DEFAULT_VERSION
        self.entities: list[Entity] = []
        self.classes: list[Class] = []
        self.tables: list[EndTab] = []

    def run(self) -> Drawing:
        while True:
            record = self.stream.next()
            if record is None:
                self.diagnostics.warn("document", "missing EOF marker")
                break
            if record.code == COMMENT:
                self.diagnostics.comment("document", record.value, line_number=record.line_number)
                continue
            if record.code == 0 and record.value == "EOF":
                break
            if record.code == 0 and record.value == "SECTION":
                name_record = self.stream.require("section name")
                if name_record.code != 2:
                    raise StreamError(
                        f"expected section name (group code 2), got group code {name_record.code}",
                        name_record.line_number,
                    )
                self._read_section(name_record.value.upper())
                continue
            self.diagnostics.warn(
                "document",
                f"group code {record.code} ({record.value!r}) outside of a section ignored",
                line_number=record.line_number,
            )
        return Drawing(
            version=self.version,
            entities=tuple(self.entities),
            classes=tuple(self.classes),
            tables=tuple(self.tables),
            warnings=self.diagnostics.warnings,
            comments=self.diagnostics.comments,
        )

    def _read_section(self, name: str) -> None:
        logger.debug("reading %s section at line %d", name, self.stream.line_number)
        if name == "HEADER":
            self._read_header()
        elif name == "CLASSES":
            for item in self._read_entities():
                if isinstance(item, Class):
                    self.classes.append(item)
                else:
                    self.diagnostics.warn(name, f"{item.dxftype} entity in CLASSES section ignored")
        elif name == "TABLES":
            self._read_tables()
        elif name == "ENTITIES":
            self.entities.extend(self._read_entities())
        elif name == "BLOCKS":
            self._read_blocks()
        else:
            logger.debug("skipping %s section", name)
            self._skip_to(("ENDSEC",))
        self._end_section(name)

    def _end_section(self, name: str) -> None:
        record = self.stream.peek()
        if record is None:
            self.diagnostics.warn(name, "section not terminated by ENDSEC")
            return
        if record.code == 0 and record.value == "ENDSEC":
            self.stream.next()
        else:
            self.diagnostics.warn(name, "section not terminated by ENDSEC", line_number=record.line_number)

    def _skip_to(self, names: tuple[str, ...]) -> None:
        while True:
            record = self.stream.peek()
            if record is None or (record.code == 0 and record.value in names + ("EOF",)):
                return
            self.stream.next()
            if record.code == COMMENT:
                self.diagnostics.comment("document", record.value, line_number=record.line_number)

    def _skip_body(self) -> None:
        while True:
            record = self.stream.peek()
            if record is None or record.code == 0:
                return
            self.stream.next()

    def _read_header(self) -> None:
        variable = None
        while True:
            record = self.stream.peek()
            if record is None or record.code == 0:
                return
            self.stream.next()
            if record.code == 9:
                variable = record.value
            elif record.code == COMMENT:
                self.diagnostics.comment("HEADER", record.value, line_number=record.line_number)
            elif variable == "$ACADVER" and record.code == 1:
                self._set_version(record.value, record.line_number)

    def _set_version(self, value: str, line_number: int) -> None:
        try:
            version = parse_version(value)
        except ValueError:
            self.diagnostics.warn(
                "HEADER", f"unknown $ACADVER {value!r}, using {self.version.name}", line_number=line_number
            )
            return
        if self.fixed_version:
            logger.debug("ignoring $ACADVER %s, version fixed to %s", value, self.version.name)
            return
        self.version = version

    def _read_entities(self, stop: tuple[str, ...] = ("ENDSEC", "EOF")) -> list[Entity]:
        return read_entities(
            self.stream,
            version=self.version,
            diagnostics=self.diagnostics,
            registry=self.registry,
            stop=stop,
        )

    def _read_blocks(self) -> None:
        while True:
            record = self.stream.peek()
            if record is None:
                return
            if record.code == 0 and record.value in _BLOCK_MARKERS:
                self.stream.next()
                self._skip_body()
                continue
            if record.code == 0 and record.value in ("ENDSEC", "EOF"):
                return
            self.entities.extend(self._read_entities(stop=("ENDSEC", "EOF", *_BLOCK_MARKERS)))

    def _read_tables(self) -> None:
        while True:
            record = self.stream.peek()
            if record is None:
                return
            if record.code == 0 and record.value in ("ENDSEC", "EOF"):
                return
            self.stream.next()
            if record.code == COMMENT:
                self.diagnostics.comment("TABLES", record.value, line_number=record.line_number)
                continue
            if record.code == 0 and record.value == "TABLE":
                self._read_table()
                continue
            self.diagnostics.warn(
                "TABLES",
                f"group code {record.code} ({record.value!r}) outside of a table ignored",
                line_number=record.line_number,
            )

    def _read_table(self) -> None:
        table_name = ""
        record = self.stream.peek()
        if record is not None and record.code == 2:
            table_name = self.stream.next().value
        logger.debug("skipping entries of table %s", table_name or "<unnamed>")
        self._skip_to(("ENDTAB", "ENDSEC"))
        record = self.stream.peek()
        if record is None or record.value != "ENDTAB":
            self.diagnostics.warn("TABLES", f"table {table_name!r} not terminated by ENDTAB")
            return
        self.stream.next()
        end = self.registry["ENDTAB"].decode(self.stream, self.version, self.diagnostics)
        self.tables.append(replace(end, table_name=table_name))


def _read_drawing(
    stream: GroupCodeStream,
    version: int | str | None,
    registry: CodecRegistry,
) -> Drawing:
    return _DrawingReader(stream, version, registry).run()


# writing


def _section(name: str, body: Iterable[tuple[int, str]]) -> list[tuple[int, str]]:
    return [(0, "SECTION"), (2, name), *body, (0, "ENDSEC")]


def dumps(
    items: Drawing | Iterable[Entity],
    version: int | str = DEFAULT_VERSION,
    *,
    registry: CodecRegistry = DEFAULT_REGISTRY,
    strict: bool = False,
) -> WriteResult:
    """Serialize ``items`` as a DXF document.

    Items that fail validation are left out and listed in ``skipped``;
    with ``strict`` the first one raises ``ValidationError`` instead. Only
    entities count towards the totals.
    """
    version = parse_version(version)
    diagnostics = Diagnostics()
    if isinstance(items, Drawing):
        items = [*items.classes, *items.tables, *items.entities]

    classes: list[tuple[int, str]] = []
    tables: list[tuple[int, str]] = []
    entities: list[tuple[int, str]] = []
    total = 0
    written = 0
    skipped: list[str] = []
    skipped_by_type: dict[str, int] = {}

    for item in items:
        if isinstance(item, Class) and version < AcadVersion.R13:
            diagnostics.warn("CLASSES", f"CLASS {item.record_name} needs R13 or later, not written")
            continue
        codec = registry.for_entity(item)
        is_entity = not isinstance(item, (Class, EndTab))
        if is_entity:
            total += 1
        try:
            tags = codec.encode(item, version, diagnostics)
        except ValidationError as exc:
            if strict:
                raise
            logger.warning("skipping %s: %s", item.dxftype, exc)
            skipped.append(str(exc))
            if is_entity:
                skipped_by_type[item.dxftype] = skipped_by_type.get(item.dxftype, 0) + 1
            continue
        if isinstance(item, EndTab):
            tables.extend([(0, "TABLE"), (2, item.table_name), (70, "0")])
            tables.extend(tags)
        elif isinstance(item, Class):
            classes.extend(tags)
        else:
            entities.extend(tags)
            written += 1

    tags = _section("HEADER", [(9, "$ACADVER"), (1, acadver(version))])
    if classes:
        tags += _section("CLASSES", classes)
    if tables:
        tags += _section("TABLES", tables)
    tags += _section("ENTITIES", entities)
    tags.append((0, "EOF"))

    return WriteResult(
        text=format_tags(tags),
        total_entities=total,
        written_entities=written,
        skipped_entities=total - written,
        skipped=tuple(skipped),
        warnings=diagnostics.warnings,
        skipped_by_type=dict(sorted(skipped_by_type.items())),
    )


def dump(
    items: Drawing | Iterable[Entity],
    stream: IO[str],
    version: int | str = DEFAULT_VERSION,
    **kwargs,
) -> WriteResult:
    result = dumps(items, version, **kwargs)
    stream.write(result.text)
    return result


def write(
    path: str | Path,
    items: Drawing | Iterable[Entity],
    version: int | str = DEFAULT_VERSION,
    *,
    encoding: str = "utf-8",
    **kwargs,
) -> WriteResult:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    result = dumps(items, version, **kwargs)
    out_path.write_text(result.text, encoding=encoding)
    return result
