"""In-memory pixel buffer: storage ownership, addressing and in-place operations."""

from __future__ import annotations

import logging
import weakref
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Sequence

import numpy as np

from src.datatypes import ResizeFilter

from . import geometry
from .convert import convert_pixels, swap_channel_values
from .exceptions import (
    DanglingParentError,
    FormatMismatchError,
    InvalidArgumentError,
    OutOfRangeError,
)
from .formats import (
    Channel,
    Format,
    ValueDomain,
    get_channel_count,
    get_channel_size,
    get_domain,
    get_pixel_size,
    is_float_format,
    is_hdr_format,
    is_ldr_format,
    to_float_format,
    to_hdr_format,
    to_ldr_format,
    to_rgb_format,
    to_rgba_format,
)
from .pixel import PixelIterator, PixelView
from .values import convert_value

if TYPE_CHECKING:
    from src.tonemap.config import ToneMapConfig
    from src.tonemap.operators import ToneMapping

logger = logging.getLogger(__name__)

Deleter = Callable[[Any], None]


class StorageMode(str, Enum):
    """How the bytes behind a buffer were obtained."""

    OWNED = "owned"
    EXTERNAL = "external"


def _release_external(deleter: Deleter, source: Any) -> None:
    logger.debug("buffer.storage release: invoking custom deleter")
    deleter(source)


class Storage:
    """Reference-counted byte storage shared by a buffer and its sub-images.

    The optional *deleter* is called with the original external object exactly
    once, when the last reference to this storage goes away.
    """

    __slots__ = ("data", "mode", "_finalizer", "__weakref__")

    def __init__(
        self,
        data: np.ndarray,
        mode: StorageMode,
        *,
        source: Any = None,
        deleter: Optional[Deleter] = None,
    ) -> None:
        self.data = data
        self.mode = mode
        self._finalizer: Optional[weakref.finalize] = None
        if deleter is not None:
            self._finalizer = weakref.finalize(self, _release_external, deleter, source)

    @property
    def nbytes(self) -> int:
        return int(self.data.size)

    @property
    def has_deleter(self) -> bool:
        return self._finalizer is not None


def _empty_storage() -> Storage:
    return Storage(np.zeros(0, dtype=np.uint8), StorageMode.OWNED)


def _storage_from_array(values: np.ndarray) -> Storage:
    flat = np.ascontiguousarray(values).reshape(-1)
    return Storage(flat.view(np.uint8), StorageMode.OWNED)


def _as_byte_array(data: Any) -> np.ndarray:
    try:
        view = memoryview(data).cast("B")
    except (TypeError, ValueError, BufferError) as exc:
        raise InvalidArgumentError(f"data must be a C-contiguous buffer: {exc}") from exc
    return np.frombuffer(view, dtype=np.uint8)


def _check_dimensions(width: int, height: int, fmt: Format) -> tuple[int, int, Format]:
    try:
        fmt = Format(fmt)
    except ValueError:
        raise InvalidArgumentError(f"unknown pixel format {fmt!r}") from None
    if fmt is Format.NONE:
        raise InvalidArgumentError("pixel format must not be NONE")
    try:
        integral = int(width) == width and int(height) == height
    except (TypeError, ValueError, OverflowError):
        integral = False
    if not integral:
        raise InvalidArgumentError(f"dimensions must be integers, got {width!r}x{height!r}")
    if width < 0 or height < 0:
        raise InvalidArgumentError(f"dimensions must be >= 0, got {width}x{height}")
    return int(width), int(height), fmt


class ImageBuffer:
    """Typed 2D pixel container.

    Instances are created through the factory classmethods. A buffer either
    owns its bytes, views external memory, or is a sub-image sharing the
    storage of a parent buffer. Sub-images hold a weak reference to their
    parent; once the parent object is gone, any pixel access raises
    :class:`DanglingParentError`.

    ``convert`` and ``resize`` reallocate: afterwards the buffer owns fresh
    storage, is detached from any parent, and outstanding pixel views and
    iterators raise :class:`StaleViewError`. ``clear``, ``swap_channels``,
    flips and pixel writes keep views valid.
    """

    def __init__(
        self,
        storage: Storage,
        width: int,
        height: int,
        fmt: Format,
        *,
        parent: Optional[ImageBuffer] = None,
        offset: tuple[int, int] = (0, 0),
    ) -> None:
        self._storage = storage
        self._width = width
        self._height = height
        self._format = Format(fmt)
        self._parent_ref: Optional[weakref.ReferenceType[ImageBuffer]] = (
            weakref.ref(parent) if parent is not None else None
        )
        self._offset_rel_to_parent = offset
        self._generation = 0

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def create(cls, width: int, height: int, fmt: Format = Format.RGBA8) -> ImageBuffer:
        """Allocate a zero-initialised buffer."""

        width, height, fmt = _check_dimensions(width, height, fmt)
        nbytes = width * height * get_pixel_size(fmt)
        logger.debug("buffer.create %dx%d format=%s bytes=%d", width, height, fmt.name, nbytes)
        return cls(Storage(np.zeros(nbytes, dtype=np.uint8), StorageMode.OWNED), width, height, fmt)

    @classmethod
    def wrap(
        cls,
        data: Any,
        width: int,
        height: int,
        fmt: Format,
        *,
        owned_externally: bool = True,
    ) -> ImageBuffer:
        """View writable external memory without copying.

        With ``owned_externally=False`` the buffer takes over the reference
        and the memory lives as long as the buffer's storage does.
        """

        width, height, fmt = _check_dimensions(width, height, fmt)
        array = _as_byte_array(data)
        cls._check_capacity(array, width, height, fmt)
        if not array.flags.writeable:
            raise InvalidArgumentError("wrapped data is read-only; use ImageBuffer.from_bytes to copy it")
        mode = StorageMode.EXTERNAL if owned_externally else StorageMode.OWNED
        logger.debug("buffer.wrap %dx%d format=%s mode=%s", width, height, fmt.name, mode.value)
        return cls(Storage(array, mode, source=data), width, height, fmt)

    @classmethod
    def wrap_with_deleter(
        cls,
        data: Any,
        width: int,
        height: int,
        fmt: Format,
        deleter: Deleter,
    ) -> ImageBuffer:
        """View external memory and call ``deleter(data)`` once it is no longer referenced."""

        if not callable(deleter):
            raise InvalidArgumentError("deleter must be callable")
        width, height, fmt = _check_dimensions(width, height, fmt)
        array = _as_byte_array(data)
        cls._check_capacity(array, width, height, fmt)
        if not array.flags.writeable:
            raise InvalidArgumentError("wrapped data is read-only; use ImageBuffer.from_bytes to copy it")
        logger.debug("buffer.wrap %dx%d format=%s mode=external deleter=yes", width, height, fmt.name)
        storage = Storage(array, StorageMode.EXTERNAL, source=data, deleter=deleter)
        return cls(storage, width, height, fmt)

    @classmethod
    def from_bytes(cls, data: Any, width: int, height: int, fmt: Format) -> ImageBuffer:
        """Allocate an owned buffer and copy *data* into it."""

        width, height, fmt = _check_dimensions(width, height, fmt)
        array = _as_byte_array(data)
        nbytes = cls._check_capacity(array, width, height, fmt)
        logger.debug("buffer.from_bytes %dx%d format=%s bytes=%d", width, height, fmt.name, nbytes)
        return cls(Storage(array[:nbytes].copy(), StorageMode.OWNED), width, height, fmt)

    @classmethod
    def create_subimage(cls, parent: ImageBuffer, x: int, y: int, width: int, height: int) -> ImageBuffer:
        """Return a view onto the rectangle ``(x, y, width, height)`` of *parent*."""

        if min(x, y, width, height) < 0:
            raise OutOfRangeError(f"sub-image rectangle ({x}, {y}, {width}, {height}) has negative components")
        if x + width > parent.width or y + height > parent.height:
            raise OutOfRangeError(
                f"sub-image rectangle ({x}, {y}, {width}, {height}) exceeds parent {parent.width}x{parent.height}"
            )
        # resolve now so a dead ancestor chain fails here rather than on first access
        parent._root_chain()
        logger.debug("buffer.subimage origin=(%d, %d) size=%dx%d", x, y, width, height)
        return cls(parent._storage, width, height, parent.format, parent=parent, offset=(x, y))

    @classmethod
    def create_cubemap(cls, faces: Sequence[ImageBuffer]) -> ImageBuffer:
        """Stack six square faces into one buffer; see :func:`.cubemap.create_cubemap`."""

        from .cubemap import create_cubemap

        return create_cubemap(faces)

    @staticmethod
    def _check_capacity(array: np.ndarray, width: int, height: int, fmt: Format) -> int:
        required = width * height * get_pixel_size(fmt)
        if array.size < required:
            raise InvalidArgumentError(
                f"{width}x{height} {fmt.name} needs {required} bytes, data holds {array.size}"
            )
        return required

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def format(self) -> Format:
        return self._format

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def channel_count(self) -> int:
        return get_channel_count(self._format)

    @property
    def channel_size(self) -> int:
        return get_channel_size(self._format)

    @property
    def pixel_size(self) -> int:
        return get_pixel_size(self._format)

    @property
    def pixel_count(self) -> int:
        return self._width * self._height

    @property
    def size(self) -> int:
        """Number of bytes covered by this buffer's own pixels."""

        return self.pixel_count * self.pixel_size

    @property
    def domain(self) -> ValueDomain:
        return get_domain(self._format)

    @property
    def has_alpha_channel(self) -> bool:
        return self.channel_count == 4

    @property
    def is_ldr_format(self) -> bool:
        return is_ldr_format(self._format)

    @property
    def is_hdr_format(self) -> bool:
        return is_hdr_format(self._format)

    @property
    def is_float_format(self) -> bool:
        return is_float_format(self._format)

    @property
    def data(self) -> np.ndarray:
        """Flat ``uint8`` storage; for sub-images this is the shared root storage."""

        return self._storage.data

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def storage_mode(self) -> StorageMode:
        return self._storage.mode

    @property
    def generation(self) -> int:
        """Bumped on every reallocation; used to detect stale views."""

        return self._generation

    @property
    def is_subimage(self) -> bool:
        return self._parent_ref is not None

    @property
    def parent(self) -> Optional[ImageBuffer]:
        if self._parent_ref is None:
            return None
        return self._live_parent()

    @property
    def pixel_coordinates_relative_to_parent(self) -> tuple[int, int]:
        return self._offset_rel_to_parent

    def __repr__(self) -> str:
        origin = f" offset={self._offset_rel_to_parent}" if self._parent_ref is not None else ""
        return f"<ImageBuffer {self._width}x{self._height} {self._format.name}{origin}>"

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------
    def _live_parent(self) -> ImageBuffer:
        if self._parent_ref is None:
            raise InvalidArgumentError(f"{self!r} is not a sub-image")
        parent = self._parent_ref()
        if parent is None:
            raise DanglingParentError("parent buffer no longer exists")
        if parent._storage is not self._storage:
            raise DanglingParentError("parent buffer has reallocated its storage")
        return parent

    def _root_chain(self) -> tuple[ImageBuffer, int, int]:
        """Return the root ancestor and this buffer's pixel origin inside it."""

        node: ImageBuffer = self
        origin_x = origin_y = 0
        while node._parent_ref is not None:
            parent = node._live_parent()
            origin_x += node._offset_rel_to_parent[0]
            origin_y += node._offset_rel_to_parent[1]
            node = parent
        return node, origin_x, origin_y

    def _check_coordinates(self, x: int, y: int) -> None:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise OutOfRangeError(f"pixel ({x}, {y}) outside {self._width}x{self._height} buffer")

    def get_pixel_index(self, x: int, y: int) -> int:
        self._check_coordinates(x, y)
        return y * self._width + x

    def get_pixel_offset(self, x: int, y: int) -> int:
        return self.get_pixel_index(x, y) * self.pixel_size

    def get_pixel_offset_at(self, index: int) -> int:
        if not 0 <= index < self.pixel_count:
            raise OutOfRangeError(f"pixel index {index} outside 0..{self.pixel_count - 1}")
        return index * self.pixel_size

    def get_pixel_coordinates(self, offset: int) -> tuple[int, int]:
        if not 0 <= offset < self.size:
            raise OutOfRangeError(f"byte offset {offset} outside 0..{self.size - 1}")
        index = offset // self.pixel_size
        return index % self._width, index // self._width

    def get_absolute_offset(self, local_offset: int) -> int:
        """Translate a byte offset in this buffer to one inside the root storage."""

        offset = local_offset
        node: ImageBuffer = self
        while node._parent_ref is not None:
            parent = node._live_parent()
            x, y = node.get_pixel_coordinates(offset)
            remainder = offset % node.pixel_size
            rel_x, rel_y = node._offset_rel_to_parent
            offset = parent.get_pixel_offset(x + rel_x, y + rel_y) + remainder
            node = parent
        return offset

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------
    def pixels(self) -> np.ndarray:
        """Writable ``(height, width, pixel_size)`` byte view of this buffer's pixels."""

        root, origin_x, origin_y = self._root_chain()
        pixel_size = self.pixel_size
        used = root._width * root._height * pixel_size
        grid = self._storage.data[:used].reshape(root._height, root._width, pixel_size)
        return grid[origin_y : origin_y + self._height, origin_x : origin_x + self._width]

    def to_array(self) -> np.ndarray:
        """Writable ``(height, width, channels)`` view typed by the format's domain."""

        root, origin_x, origin_y = self._root_chain()
        used = root._width * root._height * self.pixel_size
        typed = self._storage.data[:used].view(self.domain.dtype)
        grid = typed.reshape(root._height, root._width, self.channel_count)
        return grid[origin_y : origin_y + self._height, origin_x : origin_x + self._width]

    def _check_span(self, offset: int, size: int) -> None:
        if offset < 0 or size < 0 or offset + size > self.size:
            raise OutOfRangeError(f"byte range [{offset}, {offset + size}) outside 0..{self.size}")

    def read(self, offset: int, size: int) -> bytes:
        """Return *size* bytes starting at *offset* in this buffer's row-major byte space."""

        self._check_span(offset, size)
        return self.pixels().reshape(-1)[offset : offset + size].tobytes()

    def write(self, offset: int, data: Any) -> None:
        payload = _as_byte_array(data)
        self._check_span(offset, payload.size)
        region = self.pixels()
        flat = region.reshape(-1)
        flat[offset : offset + payload.size] = payload
        if not np.shares_memory(flat, region):
            region[...] = flat.reshape(region.shape)

    def release(self) -> None:
        """Drop this buffer's storage reference and reset it to an empty ``NONE`` buffer."""

        logger.debug("buffer.release %dx%d format=%s", self._width, self._height, self._format.name)
        self._replace_storage(_empty_storage(), 0, 0, Format.NONE)

    def _replace_storage(self, storage: Storage, width: int, height: int, fmt: Format) -> None:
        self._storage = storage
        self._width = width
        self._height = height
        self._format = Format(fmt)
        self._parent_ref = None
        self._offset_rel_to_parent = (0, 0)
        self._generation += 1

    # ------------------------------------------------------------------
    # Pixel views
    # ------------------------------------------------------------------
    def get_pixel_view(self, x: int, y: int) -> PixelView:
        return PixelView(self, self.get_pixel_offset(x, y))

    def get_pixel_view_at(self, offset: int = 0) -> PixelView:
        return PixelView(self, offset)

    def init_pixel_view(self, x: int, y: int, view: PixelView) -> None:
        """Reposition an existing *view* onto pixel ``(x, y)`` of this buffer."""

        view._rebind(self, self.get_pixel_offset(x, y))

    def set_pixel_color(
        self,
        x: int,
        y: int,
        color: Sequence[float],
        domain: ValueDomain = ValueDomain.LDR,
    ) -> None:
        self.get_pixel_view(x, y).set_color(color, domain)

    def set_pixel_color_at(
        self,
        index: int,
        color: Sequence[float],
        domain: ValueDomain = ValueDomain.LDR,
    ) -> None:
        PixelView(self, self.get_pixel_offset_at(index)).set_color(color, domain)

    def get_pixel_color(self, x: int, y: int, domain: ValueDomain = ValueDomain.FLOAT) -> tuple[Any, ...]:
        return self.get_pixel_view(x, y).get_color(domain)

    def begin(self) -> PixelIterator:
        return PixelIterator(self, 0)

    def end(self) -> PixelIterator:
        return PixelIterator(self, self.size)

    def __iter__(self) -> Iterator[PixelView]:
        return self.begin()

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------
    def convert(self, target: Format) -> None:
        """Rewrite every pixel into *target*; reallocates unless the format already matches."""

        target = Format(target)
        if target is Format.NONE:
            raise InvalidArgumentError("cannot convert to Format.NONE")
        if target == self._format:
            return
        converted = convert_pixels(self.to_array(), self._format, target)
        logger.debug(
            "buffer.convert %dx%d %s -> %s", self._width, self._height, self._format.name, target.name
        )
        self._replace_storage(_storage_from_array(converted), self._width, self._height, target)

    def to_ldr(self) -> None:
        self.convert(to_ldr_format(self._format))

    def to_hdr(self) -> None:
        self.convert(to_hdr_format(self._format))

    def to_float(self) -> None:
        self.convert(to_float_format(self._format))

    def to_rgb(self) -> None:
        self.convert(to_rgb_format(self._format))

    def to_rgba(self) -> None:
        self.convert(to_rgba_format(self._format))

    def _check_channel(self, channel: int) -> Channel:
        if not 0 <= int(channel) < self.channel_count:
            raise OutOfRangeError(f"channel {channel} outside format {self._format.name}")
        return Channel(int(channel))

    def swap_channels(self, channel0: Channel, channel1: Channel) -> None:
        first = self._check_channel(channel0)
        second = self._check_channel(channel1)
        swap_channel_values(self.to_array(), first, second)

    def copy(self, fmt: Optional[Format] = None) -> ImageBuffer:
        """Return a deep clone with compact owned storage, optionally converted to *fmt*."""

        clone = type(self)(_storage_from_array(self.to_array().copy()), self._width, self._height, self._format)
        if fmt is not None:
            clone.convert(fmt)
        return clone

    # ------------------------------------------------------------------
    # Geometric ops
    # ------------------------------------------------------------------
    def copy_to(
        self,
        dst: ImageBuffer,
        x_src: int,
        y_src: int,
        x_dst: int,
        y_dst: int,
        width: int,
        height: int,
    ) -> None:
        """Blit a ``width`` x ``height`` rectangle from this buffer into *dst*."""

        if dst.format != self._format:
            raise FormatMismatchError(
                f"cannot copy {self._format.name} pixels into a {dst.format.name} buffer"
            )
        if min(x_src, y_src, x_dst, y_dst, width, height) < 0:
            raise OutOfRangeError("copy rectangle components must be >= 0")
        if x_src + width > self._width or y_src + height > self._height:
            raise OutOfRangeError(
                f"source rectangle ({x_src}, {y_src}, {width}, {height}) exceeds {self._width}x{self._height}"
            )
        if x_dst + width > dst.width or y_dst + height > dst.height:
            raise OutOfRangeError(
                f"destination rectangle ({x_dst}, {y_dst}, {width}, {height}) exceeds {dst.width}x{dst.height}"
            )
        source = self.pixels()[y_src : y_src + height, x_src : x_src + width]
        dst.pixels()[y_dst : y_dst + height, x_dst : x_dst + width] = source

    def clear(self, color: Sequence[float], domain: ValueDomain = ValueDomain.FLOAT) -> None:
        """Fill every pixel; a 3-component *color* leaves alpha untouched."""

        components = list(color)
        if len(components) not in (3, 4):
            raise InvalidArgumentError(f"clear color needs 3 or 4 components, got {len(components)}")
        stored = self.domain
        count = min(len(components), self.channel_count)
        values = [convert_value(value, domain, stored) for value in components[:count]]
        self.to_array()[..., :count] = np.asarray(values, dtype=stored.dtype)

    def clear_alpha(self, value: float = 255, domain: ValueDomain = ValueDomain.LDR) -> None:
        if not self.has_alpha_channel:
            return
        self.to_array()[..., Channel.ALPHA] = convert_value(value, domain, self.domain)

    def flip_horizontally(self) -> None:
        geometry.flip_columns(self.pixels())

    def flip_vertically(self) -> None:
        geometry.flip_rows(self.pixels())

    def resize(self, width: int, height: int, resize_filter: Optional[ResizeFilter] = None) -> None:
        """Resample to ``width`` x ``height``; nearest-neighbour unless *resize_filter* says otherwise."""

        width, height, _ = _check_dimensions(width, height, self._format)
        policy = ResizeFilter(resize_filter) if resize_filter is not None else ResizeFilter.NEAREST
        if policy is ResizeFilter.BILINEAR:
            resized = geometry.resize_bilinear(self.to_array(), width, height, self.domain)
        else:
            resized = geometry.resize_nearest(self.pixels(), width, height)
        logger.debug(
            "buffer.resize %dx%d -> %dx%d filter=%s", self._width, self._height, width, height, policy.value
        )
        self._replace_storage(_storage_from_array(resized), width, height, self._format)

    # ------------------------------------------------------------------
    # Tone mapping
    # ------------------------------------------------------------------
    def apply_tone_mapping(
        self,
        tone_mapping: ToneMapping | Callable[[Sequence[float]], Sequence[int]],
        config: Optional[ToneMapConfig] = None,
    ) -> ImageBuffer:
        """Return a new LDR buffer; see :func:`src.tonemap.core.apply_tone_mapping`."""

        from src.tonemap.core import apply_tone_mapping

        return apply_tone_mapping(self, tone_mapping, config)


__all__ = ["ImageBuffer", "Storage", "StorageMode"]
