from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Iterable, Iterator

from .codec import ArcCodec, ClassCodec, EndTabCodec, EntityCodec, LineCodec, ThreeDFaceCodec
from .diagnostics import Diagnostics
from .entity import Entity
from .hatch import HatchCodec
from .tags import COMMENT, GroupCodeStream, format_tags
from .versions import DEFAULT_VERSION, parse_version

logger = logging.getLogger(__name__)

SECTION_TERMINATORS = ("ENDSEC", "EOF")


class CodecRegistry(Mapping):
    """Read-only mapping of entity type name to its codec."""

    def __init__(self, codecs: Iterable[EntityCodec]) -> None:
        table = {}
        for codec in codecs:
            if codec.dxftype in table:
                raise ValueError(f"duplicate codec for {codec.dxftype}")
            table[codec.dxftype] = codec
        self._codecs = MappingProxyType(table)

    def __getitem__(self, dxftype: str) -> EntityCodec:
        return self._codecs[dxftype]

    def __iter__(self) -> Iterator[str]:
        return iter(self._codecs)

    def __len__(self) -> int:
        return len(self._codecs)

    def __repr__(self) -> str:
        return f"CodecRegistry({sorted(self._codecs)!r})"

    def for_entity(self, entity: Any) -> EntityCodec:
        dxftype = getattr(entity, "dxftype", None)
        codec = self._codecs.get(dxftype) if isinstance(dxftype, str) else None
        if codec is None:
            raise TypeError(f"no codec registered for {type(entity).__name__}")
        return codec

    def extended(self, *codecs: EntityCodec) -> "CodecRegistry":
        replaced = {codec.dxftype for codec in codecs}
        kept = [codec for name, codec in self._codecs.items() if name not in replaced]
        return CodecRegistry([*kept, *codecs])


DEFAULT_REGISTRY = CodecRegistry(
    [
        ArcCodec(),
        LineCodec(),
        ThreeDFaceCodec(),
        ClassCodec(),
        EndTabCodec(),
        HatchCodec(),
    ]
)


def _skip_entity(stream: GroupCodeStream) -> None:
    while True:
        code = stream.peek_code()
        if code is None or code == 0:
            return
        stream.next()


def read_entities(
    stream: GroupCodeStream,
    *,
    version: int = DEFAULT_VERSION,
    diagnostics: Diagnostics | None = None,
    registry: CodecRegistry = DEFAULT_REGISTRY,
    stop: Iterable[str] = SECTION_TERMINATORS,
) -> list[Entity]:
    """Decode entities until a ``0`` record naming one of ``stop``.

    The terminating record is left in the stream. Entity types without a codec
    are skipped with a warning; group codes between entities are reported and
    ignored.
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    version = parse_version(version)
    stop = frozenset(stop)
    entities: list[Entity] = []
    while True:
        record = stream.peek()
        if record is None:
            return entities
        if record.code == COMMENT:
            stream.next()
            diagnostics.comment("section", record.value, line_number=record.line_number)
            continue
        if record.code != 0:
            stream.next()
            diagnostics.warn(
                "section",
                f"group code {record.code} outside of an entity ignored",
                line_number=record.line_number,
            )
            continue
        if record.value in stop:
            return entities
        stream.next()
        codec = registry.get(record.value)
        if codec is None:
            diagnostics.warn(
                "section",
                f"skipping {record.value} entity",
                line_number=record.line_number,
            )
            _skip_entity(stream)
            continue
        entity = codec.decode(stream, version, diagnostics)
        logger.debug("decoded %s at line %d", record.value, record.line_number)
        entities.append(entity)


def decode_entity(
    stream: GroupCodeStream,
    dxftype: str,
    *,
    version: int = DEFAULT_VERSION,
    diagnostics: Diagnostics | None = None,
    registry: CodecRegistry = DEFAULT_REGISTRY,
) -> Entity:
    """Decode one entity whose ``0 <dxftype>`` record was already consumed."""
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    try:
        codec = registry[dxftype]
    except KeyError:
        raise ValueError(f"no codec registered for {dxftype}") from None
    return codec.decode(stream, parse_version(version), diagnostics)


def encode_entity(
    entity: Entity,
    *,
    version: int = DEFAULT_VERSION,
    diagnostics: Diagnostics | None = None,
    registry: CodecRegistry = DEFAULT_REGISTRY,
) -> str:
    """Encode one entity as DXF text; raises ValidationError for invalid ones."""
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    codec = registry.for_entity(entity)
    return format_tags(codec.encode(entity, parse_version(version), diagnostics))
