"""Pixel formats, channels and numeric value domains."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Final

import numpy as np

from .exceptions import InvalidArgumentError


class Format(IntEnum):
    """Pixel layout: channel count times numeric domain."""

    NONE = 0
    RGB8 = 1
    RGBA8 = 2
    RGB16 = 3
    RGBA16 = 4
    RGB32 = 5
    RGBA32 = 6

    RGB_LDR = 1
    RGBA_LDR = 2
    RGB_HDR = 3
    RGBA_HDR = 4
    RGB_FLOAT = 5
    RGBA_FLOAT = 6


class Channel(IntEnum):
    RED = 0
    GREEN = 1
    BLUE = 2
    ALPHA = 3

    R = 0
    G = 1
    B = 2
    A = 3


class ValueDomain(str, Enum):
    """Numeric domain of a single channel value."""

    LDR = "ldr"
    HDR = "hdr"
    FLOAT = "float"

    @property
    def dtype(self) -> np.dtype:
        return _DOMAIN_DTYPES[self]

    @property
    def channel_size(self) -> int:
        return _DOMAIN_DTYPES[self].itemsize

    @property
    def max_value(self) -> int | float:
        """Fully saturated (opaque) value of the domain."""

        return _DOMAIN_MAX[self]


_DOMAIN_DTYPES: Final[dict[ValueDomain, np.dtype]] = {
    ValueDomain.LDR: np.dtype(np.uint8),
    ValueDomain.HDR: np.dtype("<u2"),
    ValueDomain.FLOAT: np.dtype("<f4"),
}

_DOMAIN_MAX: Final[dict[ValueDomain, int | float]] = {
    ValueDomain.LDR: 255,
    ValueDomain.HDR: 65535,
    ValueDomain.FLOAT: 1.0,
}

# (channel count, domain) per concrete format
_LAYOUT: Final[dict[Format, tuple[int, ValueDomain]]] = {
    Format.RGB8: (3, ValueDomain.LDR),
    Format.RGBA8: (4, ValueDomain.LDR),
    Format.RGB16: (3, ValueDomain.HDR),
    Format.RGBA16: (4, ValueDomain.HDR),
    Format.RGB32: (3, ValueDomain.FLOAT),
    Format.RGBA32: (4, ValueDomain.FLOAT),
}

_BY_LAYOUT: Final[dict[tuple[int, ValueDomain], Format]] = {
    layout: fmt for fmt, layout in _LAYOUT.items()
}


def concrete_formats() -> tuple[Format, ...]:
    """Return every format except ``Format.NONE`` in declaration order."""

    return tuple(_LAYOUT)


def get_channel_count(fmt: Format) -> int:
    layout = _LAYOUT.get(Format(fmt))
    return layout[0] if layout else 0


def get_channel_size(fmt: Format) -> int:
    layout = _LAYOUT.get(Format(fmt))
    return layout[1].channel_size if layout else 0


def get_pixel_size(fmt: Format) -> int:
    return get_channel_count(fmt) * get_channel_size(fmt)


def has_alpha(fmt: Format) -> bool:
    return get_channel_count(fmt) == 4


def get_domain(fmt: Format) -> ValueDomain:
    layout = _LAYOUT.get(Format(fmt))
    if layout is None:
        raise InvalidArgumentError(f"format {Format(fmt).name} has no value domain")
    return layout[1]


def is_ldr_format(fmt: Format) -> bool:
    layout = _LAYOUT.get(Format(fmt))
    return layout is not None and layout[1] is ValueDomain.LDR


def is_hdr_format(fmt: Format) -> bool:
    layout = _LAYOUT.get(Format(fmt))
    return layout is not None and layout[1] is ValueDomain.HDR


def is_float_format(fmt: Format) -> bool:
    layout = _LAYOUT.get(Format(fmt))
    return layout is not None and layout[1] is ValueDomain.FLOAT


def format_for(domain: ValueDomain, channel_count: int) -> Format:
    """Return the format combining *domain* with *channel_count* channels."""

    try:
        return _BY_LAYOUT[(channel_count, ValueDomain(domain))]
    except KeyError:
        raise InvalidArgumentError(
            f"no format with {channel_count} channels in the {ValueDomain(domain).value} domain"
        ) from None


def _with_domain(fmt: Format, domain: ValueDomain) -> Format:
    layout = _LAYOUT.get(Format(fmt))
    if layout is None:
        return Format.NONE
    return _BY_LAYOUT[(layout[0], domain)]


def _with_channels(fmt: Format, channel_count: int) -> Format:
    layout = _LAYOUT.get(Format(fmt))
    if layout is None:
        return Format.NONE
    return _BY_LAYOUT[(channel_count, layout[1])]


def to_ldr_format(fmt: Format) -> Format:
    return _with_domain(fmt, ValueDomain.LDR)


def to_hdr_format(fmt: Format) -> Format:
    return _with_domain(fmt, ValueDomain.HDR)


def to_float_format(fmt: Format) -> Format:
    return _with_domain(fmt, ValueDomain.FLOAT)


def to_rgb_format(fmt: Format) -> Format:
    return _with_channels(fmt, 3)


def to_rgba_format(fmt: Format) -> Format:
    return _with_channels(fmt, 4)


def parse_format(name: str) -> Format:
    """Resolve a format from its enum name (``"rgba8"``, ``"RGB_FLOAT"``...)."""

    key = name.strip().upper().replace("-", "_")
    try:
        return Format[key]
    except KeyError:
        raise InvalidArgumentError(f"unknown pixel format '{name}'") from None


__all__ = [
    "Format",
    "Channel",
    "ValueDomain",
    "concrete_formats",
    "get_channel_count",
    "get_channel_size",
    "get_pixel_size",
    "has_alpha",
    "get_domain",
    "is_ldr_format",
    "is_hdr_format",
    "is_float_format",
    "format_for",
    "to_ldr_format",
    "to_hdr_format",
    "to_float_format",
    "to_rgb_format",
    "to_rgba_format",
    "parse_format",
]
