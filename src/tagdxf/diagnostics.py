from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import CommentNotice, DxfWarning, StreamError, UnknownTagWarning

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    category: type[DxfWarning]
    context: str
    message: str
    line_number: int | None = None

    def __str__(self) -> str:
        where = f" (line {self.line_number})" if self.line_number is not None else ""
        return f"{self.category.__name__}: {self.context}: {self.message}{where}"


class Diagnostics:
    """Collects warnings and comments for one decode or encode run.

    Warnings are kept in arrival order so that a caller can report them next to
    a partially successful result. ``fail`` never returns.
    """

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []
        self._comments: list[str] = []

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return tuple(self._items)

    @property
    def comments(self) -> tuple[str, ...]:
        return tuple(self._comments)

    def __len__(self) -> int:
        return len(self._items)

    def warn(
        self,
        context: str,
        message: str,
        *,
        category: type[DxfWarning] = UnknownTagWarning,
        line_number: int | None = None,
    ) -> None:
        item = Diagnostic(category, context, message, line_number)
        self._items.append(item)
        logger.warning("%s", item)

    def comment(self, context: str, text: str, *, line_number: int | None = None) -> None:
        self._comments.append(text)
        self._items.append(Diagnostic(CommentNotice, context, text, line_number))
        logger.debug("DXF comment in %s: %s", context, text)

    def fail(self, context: str, message: str, *, line_number: int | None = None) -> None:
        raise StreamError(f"{context}: {message}", line_number)

    def of_category(self, category: type[DxfWarning]) -> list[Diagnostic]:
        return [item for item in self._items if issubclass(item.category, category)]
