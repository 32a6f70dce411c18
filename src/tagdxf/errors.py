from __future__ import annotations


class DxfError(Exception):
    """Base class for all tagdxf errors."""


class StreamError(DxfError):
    """Unrecoverable input problem; aborts decoding of the current document."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.line_number = line_number
        self.cause = cause
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ValidationError(DxfError):
    """A semantically invalid entity. Only the offending entity is skipped."""

    def __init__(
        self,
        message: str,
        *,
        dxftype: str,
        field: str,
        handle: int = -1,
    ) -> None:
        self.message = message
        self.dxftype = dxftype
        self.field = field
        self.handle = handle
        label = f"{dxftype}({handle:X})" if handle >= 0 else dxftype
        super().__init__(f"{label}.{field}: {message}")


class DxfWarning(UserWarning):
    pass


class UnknownTagWarning(DxfWarning):
    """Group code not recognized for the current entity, or an unparsable value."""


class CorrectionWarning(DxfWarning):
    """A value was silently repaired, e.g. an empty layer moved to layer 0."""


class CommentNotice(DxfWarning):
    """A group 999 comment was seen."""
