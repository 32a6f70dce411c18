from __future__ import annotations

from enum import Enum, IntEnum


class AcadVersion(IntEnum):
    R10 = 10
    R11 = 11
    R12 = 12
    R13 = 13
    R14 = 14
    R2000 = 15
    R2004 = 18
    R2007 = 21
    R2010 = 24
    R2013 = 27
    R2018 = 32


DEFAULT_VERSION = AcadVersion.R2000

# $ACADVER header values. AC1009 covers both R11 and R12; it reads as R12.
ACADVER_CODES = {
    AcadVersion.R10: "AC1006",
    AcadVersion.R11: "AC1009",
    AcadVersion.R12: "AC1009",
    AcadVersion.R13: "AC1012",
    AcadVersion.R14: "AC1014",
    AcadVersion.R2000: "AC1015",
    AcadVersion.R2004: "AC1018",
    AcadVersion.R2007: "AC1021",
    AcadVersion.R2010: "AC1024",
    AcadVersion.R2013: "AC1027",
    AcadVersion.R2018: "AC1032",
}
_FROM_ACADVER = {
    "AC1006": AcadVersion.R10,
    "AC1009": AcadVersion.R12,
    "AC1012": AcadVersion.R13,
    "AC1014": AcadVersion.R14,
    "AC1015": AcadVersion.R2000,
    "AC1018": AcadVersion.R2004,
    "AC1021": AcadVersion.R2007,
    "AC1024": AcadVersion.R2010,
    "AC1027": AcadVersion.R2013,
    "AC1032": AcadVersion.R2018,
}


class VersionField(Enum):
    ELEVATION = "elevation"
    EXTRUSION = "extrusion"
    SUBCLASS_MARKER = "subclass_marker"
    SPLINE_FIT_DATA = "spline_fit_data"


_MAX_VERSION = {
    VersionField.ELEVATION: AcadVersion.R11,
}
_MIN_VERSION = {
    VersionField.EXTRUSION: AcadVersion.R12,
    VersionField.SUBCLASS_MARKER: AcadVersion.R14,
    VersionField.SPLINE_FIT_DATA: AcadVersion.R2010,
}


def is_field_legal(field: VersionField, version: int) -> bool:
    minimum = _MIN_VERSION.get(field)
    if minimum is not None and version < minimum:
        return False
    maximum = _MAX_VERSION.get(field)
    if maximum is not None and version > maximum:
        return False
    return True


def parse_version(value: object) -> AcadVersion:
    if isinstance(value, AcadVersion):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return AcadVersion(value)
        except ValueError:
            raise ValueError(f"unsupported DXF version: {value}") from None
    name = str(value).strip().upper()
    if name in _FROM_ACADVER:
        return _FROM_ACADVER[name]
    if name in AcadVersion.__members__:
        return AcadVersion[name]
    if name.isdigit():
        return parse_version(int(name))
    raise ValueError(f"unsupported DXF version: {value}")


def acadver(version: int) -> str:
    return ACADVER_CODES[parse_version(version)]
