from __future__ import annotations

import gc

import numpy as np
import pytest

from src.image_buffer import (
    DanglingParentError,
    Format,
    ImageBuffer,
    InvalidArgumentError,
    OutOfRangeError,
    StorageMode,
    ValueDomain,
)


def test_create_is_zero_initialised() -> None:
    buffer = ImageBuffer.create(3, 2, Format.RGB16)
    assert buffer.size == 3 * 2 * 6
    assert buffer.pixel_count == 6
    assert buffer.domain is ValueDomain.HDR
    assert buffer.storage_mode is StorageMode.OWNED
    assert not buffer.data.any()
    assert not buffer.is_subimage
    assert buffer.parent is None


def test_create_defaults_to_rgba8_and_allows_empty_buffers() -> None:
    buffer = ImageBuffer.create(0, 5)
    assert buffer.format is Format.RGBA8
    assert buffer.size == 0
    assert list(buffer) == []


@pytest.mark.parametrize(
    ("width", "height", "fmt"),
    [
        (-1, 2, Format.RGB8),
        (2, 2, Format.NONE),
        (2, 2, 42),
        ("wide", 2, Format.RGB8),
        (2, None, Format.RGB8),
        (2.5, 2, Format.RGB8),
    ],
)
def test_create_rejects_bad_arguments(width: int, height: int, fmt: Format) -> None:
    with pytest.raises(InvalidArgumentError):
        ImageBuffer.create(width, height, fmt)


def test_wrap_shares_external_memory() -> None:
    external = bytearray(2 * 2 * 3)
    buffer = ImageBuffer.wrap(external, 2, 2, Format.RGB8)
    assert buffer.storage_mode is StorageMode.EXTERNAL
    buffer.set_pixel_color(1, 1, (10, 20, 30))
    assert external[9:12] == bytearray([10, 20, 30])
    external[0] = 7
    assert buffer.get_pixel_view(0, 0).get_ldr_value(0) == 7


def test_wrap_validates_capacity_and_writability() -> None:
    with pytest.raises(InvalidArgumentError):
        ImageBuffer.wrap(bytearray(5), 2, 2, Format.RGB8)
    with pytest.raises(InvalidArgumentError):
        ImageBuffer.wrap(bytes(12), 2, 2, Format.RGB8)
    with pytest.raises(InvalidArgumentError):
        ImageBuffer.wrap(object(), 1, 1, Format.RGB8)


def test_wrap_taking_ownership_reports_owned_mode() -> None:
    buffer = ImageBuffer.wrap(bytearray(4), 1, 1, Format.RGBA8, owned_externally=False)
    assert buffer.storage_mode is StorageMode.OWNED


def test_from_bytes_copies() -> None:
    source = bytearray(range(12))
    buffer = ImageBuffer.from_bytes(source, 2, 2, Format.RGB8)
    source[0] = 200
    assert buffer.read(0, 3) == bytes([0, 1, 2])
    assert ImageBuffer.from_bytes(bytes(range(12)), 2, 2, Format.RGB8).read(9, 3) == bytes([9, 10, 11])


def test_deleter_runs_once_after_last_reference() -> None:
    released: list[bytearray] = []
    external = bytearray(4 * 4 * 4)
    buffer = ImageBuffer.wrap_with_deleter(external, 4, 4, Format.RGBA8, released.append)
    child = ImageBuffer.create_subimage(buffer, 1, 1, 2, 2)
    assert buffer.storage.has_deleter

    del buffer
    gc.collect()
    assert released == []

    del child
    gc.collect()
    assert len(released) == 1
    assert released[0] is external


def test_deleter_runs_when_storage_is_replaced() -> None:
    released: list[object] = []
    buffer = ImageBuffer.wrap_with_deleter(bytearray(3), 1, 1, Format.RGB8, released.append)
    buffer.convert(Format.RGBA8)
    gc.collect()
    assert len(released) == 1
    buffer.release()
    gc.collect()
    assert len(released) == 1
    assert buffer.format is Format.NONE
    assert buffer.size == 0


def test_wrap_with_deleter_requires_callable() -> None:
    with pytest.raises(InvalidArgumentError):
        ImageBuffer.wrap_with_deleter(bytearray(3), 1, 1, Format.RGB8, "free")  # type: ignore[arg-type]


def test_pixel_addressing(numbered_rgba8: ImageBuffer) -> None:
    buffer = numbered_rgba8
    assert buffer.get_pixel_index(2, 1) == 6
    assert buffer.get_pixel_offset(2, 1) == 24
    assert buffer.get_pixel_offset_at(6) == 24
    assert buffer.get_pixel_coordinates(24) == (2, 1)
    assert buffer.get_pixel_coordinates(27) == (2, 1)
    with pytest.raises(OutOfRangeError):
        buffer.get_pixel_index(4, 0)
    with pytest.raises(OutOfRangeError):
        buffer.get_pixel_offset_at(12)
    with pytest.raises(OutOfRangeError):
        buffer.get_pixel_coordinates(buffer.size)


def test_subimage_shares_parent_storage(numbered_rgba8: ImageBuffer) -> None:
    child = ImageBuffer.create_subimage(numbered_rgba8, 1, 1, 2, 2)
    assert child.is_subimage
    assert child.parent is numbered_rgba8
    assert child.storage is numbered_rgba8.storage
    assert child.pixel_coordinates_relative_to_parent == (1, 1)
    assert child.get_pixel_color(0, 0, ValueDomain.LDR) == (1, 1, 11, 255)

    child.set_pixel_color(1, 1, (99, 98, 97, 96))
    assert numbered_rgba8.get_pixel_color(2, 2, ValueDomain.LDR) == (99, 98, 97, 96)


def test_absolute_offset_composes_through_nested_subimages(numbered_rgba8: ImageBuffer) -> None:
    child = ImageBuffer.create_subimage(numbered_rgba8, 1, 1, 3, 2)
    grandchild = ImageBuffer.create_subimage(child, 1, 0, 2, 2)
    assert grandchild.get_absolute_offset(0) == numbered_rgba8.get_pixel_offset(2, 1)
    assert grandchild.get_absolute_offset(4 + 2) == numbered_rgba8.get_pixel_offset(3, 1) + 2
    assert grandchild.get_pixel_color(1, 1, ValueDomain.LDR) == (3, 2, 23, 255)


def test_subimage_rejects_rectangles_outside_parent(numbered_rgba8: ImageBuffer) -> None:
    with pytest.raises(OutOfRangeError):
        ImageBuffer.create_subimage(numbered_rgba8, 3, 0, 2, 1)
    with pytest.raises(OutOfRangeError):
        ImageBuffer.create_subimage(numbered_rgba8, -1, 0, 1, 1)
    empty = ImageBuffer.create_subimage(numbered_rgba8, 4, 3, 0, 0)
    assert empty.size == 0


def test_subimage_of_dropped_parent_is_dangling() -> None:
    parent = ImageBuffer.create(4, 4, Format.RGB8)
    child = ImageBuffer.create_subimage(parent, 0, 0, 2, 2)
    del parent
    gc.collect()
    with pytest.raises(DanglingParentError):
        child.get_pixel_color(0, 0)
    with pytest.raises(DanglingParentError):
        child.parent
    with pytest.raises(DanglingParentError):
        ImageBuffer.create_subimage(child, 0, 0, 1, 1)


def test_subimage_of_reallocated_parent_is_dangling(numbered_rgba8: ImageBuffer) -> None:
    child = ImageBuffer.create_subimage(numbered_rgba8, 0, 0, 2, 2)
    numbered_rgba8.convert(Format.RGBA16)
    with pytest.raises(DanglingParentError):
        child.pixels()


def test_read_and_write_use_local_row_major_bytes(numbered_rgba8: ImageBuffer) -> None:
    child = ImageBuffer.create_subimage(numbered_rgba8, 1, 1, 2, 2)
    assert child.read(0, 8) == bytes([1, 1, 11, 255, 2, 1, 12, 255])
    child.write(8, bytes([5, 6, 7, 8]))
    assert numbered_rgba8.get_pixel_color(1, 2, ValueDomain.LDR) == (5, 6, 7, 8)
    with pytest.raises(OutOfRangeError):
        child.read(12, 8)
    with pytest.raises(OutOfRangeError):
        child.write(14, bytes(4))


def test_pixels_and_to_array_are_views(numbered_rgba8: ImageBuffer) -> None:
    child = ImageBuffer.create_subimage(numbered_rgba8, 2, 0, 2, 3)
    assert child.pixels().shape == (3, 2, 4)
    child.to_array()[0, 0, 0] = 77
    assert numbered_rgba8.get_pixel_view(2, 0).get_ldr_value(0) == 77


def test_to_array_is_typed_by_domain() -> None:
    buffer = ImageBuffer.create(2, 1, Format.RGB32)
    buffer.set_pixel_color(1, 0, (0.25, 0.5, 2.0), ValueDomain.FLOAT)
    array = buffer.to_array()
    assert array.dtype == np.float32
    assert array[0, 1].tolist() == [0.25, 0.5, 2.0]


def test_copy_is_deep_and_compact(numbered_rgba8: ImageBuffer) -> None:
    child = ImageBuffer.create_subimage(numbered_rgba8, 1, 1, 2, 2)
    clone = child.copy()
    assert not clone.is_subimage
    assert clone.storage.nbytes == clone.size == 16
    clone.set_pixel_color(0, 0, (0, 0, 0, 0))
    assert numbered_rgba8.get_pixel_color(1, 1, ValueDomain.LDR) == (1, 1, 11, 255)
    assert child.copy(Format.RGB16).format is Format.RGB16


def test_offset_at_width_is_out_of_range(numbered_rgba8: ImageBuffer) -> None:
    with pytest.raises(OutOfRangeError):
        numbered_rgba8.get_pixel_offset(numbered_rgba8.width, 0)


def test_root_buffer_has_no_live_parent(numbered_rgba8: ImageBuffer) -> None:
    assert numbered_rgba8.parent is None
    with pytest.raises(InvalidArgumentError):
        numbered_rgba8._live_parent()
