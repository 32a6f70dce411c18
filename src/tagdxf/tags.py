from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Iterable, Sequence

from .errors import StreamError
from .versions import VersionField, is_field_legal

COMMENT = 999
SUBCLASS = 100

_FLOAT_RANGES = ((10, 59), (110, 149), (210, 239), (460, 469), (1010, 1059))
_INT_RANGES = (
    (60, 79),
    (90, 99),
    (170, 179),
    (270, 289),
    (290, 299),
    (370, 389),
    (400, 409),
    (420, 429),
    (440, 459),
    (1060, 1071),
)


@dataclass(frozen=True)
class GroupCodeRecord:
    code: int
    value: str
    line_number: int


def value_type(code: int) -> type:
    for low, high in _FLOAT_RANGES:
        if low <= code <= high:
            return float
    for low, high in _INT_RANGES:
        if low <= code <= high:
            return int
    return str


def parse_value(code: int, raw: str) -> object:
    """Parse ``raw`` as the semantic type of ``code``; raises ValueError."""
    kind = value_type(code)
    if kind is float:
        return float(raw)
    if kind is int:
        return int(raw)
    return raw


def format_value(code: int, value: object) -> str:
    kind = value_type(code)
    if kind is float:
        return repr(float(value))
    if kind is int:
        return str(int(value))
    return str(value)


class GroupCodeStream:
    """Reads (code, value) records from a line-oriented DXF stream.

    Every record consumes two lines. ``line_number`` always names the last
    line read; a record remembers the line of its group code.
    """

    def __init__(self, lines: Iterable[str], *, name: str = "<stream>") -> None:
        self.name = name
        self._lines = iter(lines)
        self._line_number = 0
        self._pending: GroupCodeRecord | None = None

    @classmethod
    def from_text(cls, text: str, *, name: str = "<string>") -> "GroupCodeStream":
        return cls(io.StringIO(text), name=name)

    @property
    def line_number(self) -> int:
        return self._line_number

    def next(self) -> GroupCodeRecord | None:
        """Return the next record, or None at a clean end of input."""
        if self._pending is not None:
            record, self._pending = self._pending, None
            return record
        return self._read_record()

    def peek(self) -> GroupCodeRecord | None:
        if self._pending is None:
            self._pending = self._read_record()
        return self._pending

    def peek_code(self) -> int | None:
        record = self.peek()
        return None if record is None else record.code

    def require(self, context: str) -> GroupCodeRecord:
        record = self.next()
        if record is None:
            raise StreamError(
                f"unexpected end of input while reading {context}",
                self._line_number,
            )
        return record

    def _readline(self) -> str | None:
        try:
            line = next(self._lines)
        except StopIteration:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StreamError(
                f"failed to read {self.name}: {exc}", self._line_number + 1, exc
            ) from exc
        self._line_number += 1
        return line.rstrip("\r\n")

    def _read_record(self) -> GroupCodeRecord | None:
        code_line = self._readline()
        if code_line is None:
            return None
        line_number = self._line_number
        code_text = code_line.strip()
        value_line = self._readline()
        if value_line is None:
            if code_text == "":
                # trailing blank line
                return None
            raise StreamError(
                f"unexpected end of input after group code {code_text!r}", line_number
            )
        try:
            code = int(code_text)
        except ValueError as exc:
            raise StreamError(f"invalid group code {code_text!r}", line_number, exc) from exc
        return GroupCodeRecord(code, value_line.strip(), line_number)


def format_tags(tags: Iterable[tuple[int, str]]) -> str:
    return "".join(f"{code:>3}\n{value}\n" for code, value in tags)


class TagWriter:
    """Buffers the records of one entity until it is known to be valid."""

    def __init__(self, version: int) -> None:
        self.version = version
        self._tags: list[tuple[int, str]] = []

    @property
    def tags(self) -> list[tuple[int, str]]:
        return list(self._tags)

    def write(self, code: int, value: object) -> None:
        self._tags.append((code, format_value(code, value)))

    def write_handle(self, code: int, handle: int) -> None:
        self._tags.append((code, f"{int(handle):X}"))

    def write_point(self, code: int, point: Sequence[float]) -> None:
        for axis, value in enumerate(point):
            self.write(code + 10 * axis, value)

    def write_subclass(self, name: str) -> None:
        if is_field_legal(VersionField.SUBCLASS_MARKER, self.version):
            self._tags.append((SUBCLASS, name))

    def write_extrusion(self, extrusion: Sequence[float]) -> None:
        if is_field_legal(VersionField.EXTRUSION, self.version):
            self.write_point(210, extrusion)
