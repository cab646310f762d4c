"""Exception hierarchy for the pixel buffer engine."""

from __future__ import annotations

__all__ = [
    "ImageBufferError",
    "OutOfRangeError",
    "FormatMismatchError",
    "InvalidArgumentError",
    "DanglingParentError",
    "StaleViewError",
]


class ImageBufferError(RuntimeError):
    """Base class for all pixel buffer failures."""


class OutOfRangeError(ImageBufferError, IndexError):
    """Raised when a coordinate, index, channel or byte offset lies outside the buffer."""


class FormatMismatchError(ImageBufferError, ValueError):
    """Raised when two buffers must share a format but do not."""


class InvalidArgumentError(ImageBufferError, ValueError):
    """Raised for malformed construction input or unsupported formats."""


class DanglingParentError(ImageBufferError):
    """Raised when a sub-image's parent no longer exists or has reallocated its storage."""


class StaleViewError(ImageBufferError):
    """Raised when a pixel view or iterator outlives a reallocation of its buffer."""
