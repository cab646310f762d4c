"""Per-pixel cursor and forward iterator over an :class:`ImageBuffer`."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, Sequence

import numpy as np

from .exceptions import OutOfRangeError, StaleViewError
from .formats import Channel, ValueDomain
from .values import convert_value

if TYPE_CHECKING:
    from .buffer import ImageBuffer


def _coerce_channel(channel: Any) -> Channel:
    try:
        return Channel(int(channel))
    except ValueError:
        raise OutOfRangeError(f"channel {channel!r} is not one of R, G, B, A") from None


class PixelView:
    """Cursor bound to one pixel of a buffer.

    The offset is local to the buffer; it is translated to the shared root
    storage on each access. Values are decoded from the buffer's stored domain
    and converted to the requested one at this boundary. Alpha reads on RGB
    formats report the opaque value and alpha writes are ignored.
    """

    __slots__ = ("_buffer", "_offset", "_generation")

    def __init__(self, buffer: ImageBuffer, offset: int) -> None:
        self._buffer = buffer
        self._offset = offset
        self._generation = buffer.generation
        self._check_offset()

    def _rebind(self, buffer: ImageBuffer, offset: int) -> None:
        self._buffer = buffer
        self._offset = offset
        self._generation = buffer.generation
        self._check_offset()

    def _check_offset(self) -> None:
        buffer = self._buffer
        if not 0 <= self._offset < buffer.size or self._offset % buffer.pixel_size:
            raise OutOfRangeError(f"offset {self._offset} is not a pixel of {buffer!r}")

    def _check_valid(self) -> None:
        if self._generation != self._buffer.generation:
            raise StaleViewError("pixel view used after its buffer reallocated")

    @property
    def image_buffer(self) -> ImageBuffer:
        return self._buffer

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def pixel_index(self) -> int:
        self._check_valid()
        return self._offset // self._buffer.pixel_size

    @property
    def x(self) -> int:
        return self.pixel_index % self._buffer.width

    @property
    def y(self) -> int:
        return self.pixel_index // self._buffer.width

    @property
    def absolute_offset(self) -> int:
        self._check_valid()
        return self._buffer.get_absolute_offset(self._offset)

    @property
    def pixel_data(self) -> bytes:
        start = self.absolute_offset
        return self._buffer.data[start : start + self._buffer.pixel_size].tobytes()

    def _channel_bytes(self, channel: Channel) -> np.ndarray:
        size = self._buffer.channel_size
        start = self.absolute_offset + int(channel) * size
        return self._buffer.data[start : start + size]

    def _read_stored(self, channel: Channel) -> int | float:
        return self._channel_bytes(channel).view(self._buffer.domain.dtype)[0].item()

    def _read(self, channel: Any, domain: ValueDomain) -> int | float:
        channel = _coerce_channel(channel)
        self._check_valid()
        if channel >= self._buffer.channel_count:
            return domain.max_value
        return convert_value(self._read_stored(channel), self._buffer.domain, domain)

    def _write(self, channel: Any, value: Any, domain: ValueDomain) -> None:
        channel = _coerce_channel(channel)
        self._check_valid()
        if channel >= self._buffer.channel_count:
            return
        stored = self._buffer.domain
        encoded = np.asarray([convert_value(value, domain, stored)], dtype=stored.dtype)
        self._channel_bytes(channel)[:] = encoded.view(np.uint8)

    def get_ldr_value(self, channel: Channel) -> int:
        return int(self._read(channel, ValueDomain.LDR))

    def get_hdr_value(self, channel: Channel) -> int:
        return int(self._read(channel, ValueDomain.HDR))

    def get_float_value(self, channel: Channel) -> float:
        return float(self._read(channel, ValueDomain.FLOAT))

    def set_ldr_value(self, channel: Channel, value: int) -> None:
        self._write(channel, value, ValueDomain.LDR)

    def set_hdr_value(self, channel: Channel, value: int) -> None:
        self._write(channel, value, ValueDomain.HDR)

    def set_float_value(self, channel: Channel, value: float) -> None:
        self._write(channel, value, ValueDomain.FLOAT)

    def get_color(self, domain: ValueDomain = ValueDomain.FLOAT) -> tuple[Any, ...]:
        domain = ValueDomain(domain)
        return tuple(self._read(channel, domain) for channel in range(self._buffer.channel_count))

    def set_color(self, color: Sequence[Any], domain: ValueDomain = ValueDomain.LDR) -> None:
        domain = ValueDomain(domain)
        if not 3 <= len(color) <= 4:
            raise OutOfRangeError(f"pixel color needs 3 or 4 components, got {len(color)}")
        for channel, value in enumerate(color):
            self._write(channel, value, domain)

    def copy_value(self, channel: Channel, other: PixelView) -> None:
        """Copy one channel from *other*, converting between the two buffers' domains."""

        channel = _coerce_channel(channel)
        other._check_valid()
        source = other._buffer
        if channel >= source.channel_count:
            self._write(channel, source.domain.max_value, source.domain)
            return
        self._write(channel, other._read_stored(channel), source.domain)

    def copy_values(self, other: PixelView) -> None:
        self._check_valid()
        other._check_valid()
        if other._buffer.format == self._buffer.format:
            start = self.absolute_offset
            self._buffer.data[start : start + self._buffer.pixel_size] = np.frombuffer(
                other.pixel_data, dtype=np.uint8
            )
            return
        for channel in range(self._buffer.channel_count):
            self.copy_value(Channel(channel), other)

    def __repr__(self) -> str:
        return f"<PixelView offset={self._offset} of {self._buffer!r}>"


class PixelIterator:
    """Forward iterator producing one :class:`PixelView` per pixel in row-major order.

    Restart by calling ``begin()`` on the buffer again. The iterator raises
    :class:`StaleViewError` if the buffer reallocates mid-traversal.
    """

    __slots__ = ("_buffer", "_offset", "_generation")

    def __init__(self, buffer: ImageBuffer, offset: int) -> None:
        self._buffer = buffer
        self._offset = offset
        self._generation = buffer.generation

    @property
    def offset(self) -> int:
        return self._offset

    def __iter__(self) -> Iterator[PixelView]:
        return self

    def __next__(self) -> PixelView:
        if self._generation != self._buffer.generation:
            raise StaleViewError("pixel iterator used after its buffer reallocated")
        if self._offset >= self._buffer.size:
            raise StopIteration
        view = PixelView(self._buffer, self._offset)
        self._offset += self._buffer.pixel_size
        return view

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelIterator):
            return NotImplemented
        return self._buffer is other._buffer and self._offset == other._offset

    __hash__ = None  # type: ignore[assignment]


__all__ = ["PixelView", "PixelIterator"]
