"""Pixel buffer engine entry points."""

from .buffer import ImageBuffer, Storage, StorageMode
from .cubemap import CUBEMAP_FACE_COUNT, CubemapFace, create_cubemap, get_cubemap_face
from .exceptions import (
    DanglingParentError,
    FormatMismatchError,
    ImageBufferError,
    InvalidArgumentError,
    OutOfRangeError,
    StaleViewError,
)
from .formats import (
    Channel,
    Format,
    ValueDomain,
    to_float_format,
    to_hdr_format,
    to_ldr_format,
    to_rgb_format,
    to_rgba_format,
)
from .pixel import PixelIterator, PixelView
from .values import convert_value, to_float_value, to_hdr_value, to_ldr_value

__all__ = [
    "ImageBuffer",
    "Storage",
    "StorageMode",
    "CubemapFace",
    "CUBEMAP_FACE_COUNT",
    "create_cubemap",
    "get_cubemap_face",
    "PixelView",
    "PixelIterator",
    "Format",
    "Channel",
    "ValueDomain",
    "to_ldr_format",
    "to_hdr_format",
    "to_float_format",
    "to_rgb_format",
    "to_rgba_format",
    "to_ldr_value",
    "to_hdr_value",
    "to_float_value",
    "convert_value",
    "ImageBufferError",
    "OutOfRangeError",
    "FormatMismatchError",
    "InvalidArgumentError",
    "DanglingParentError",
    "StaleViewError",
]
