"""Cubemap assembly: six square faces packed face-major into one buffer."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Sequence

import numpy as np

from .buffer import ImageBuffer, Storage, StorageMode
from .exceptions import InvalidArgumentError, OutOfRangeError

logger = logging.getLogger(__name__)


class CubemapFace(IntEnum):
    RIGHT = 0
    LEFT = 1
    UP = 2
    DOWN = 3
    FORWARD = 4
    BACKWARD = 5


CUBEMAP_FACE_COUNT = len(CubemapFace)


def create_cubemap(faces: Sequence[ImageBuffer]) -> ImageBuffer:
    """Concatenate six faces ordered right, left, up, down, forward, backward.

    The result is ``size`` pixels wide and ``6 * size`` tall; face ``i``
    occupies rows ``i * size`` to ``(i + 1) * size``. No projection is applied.
    """

    faces = list(faces)
    if len(faces) != CUBEMAP_FACE_COUNT:
        raise InvalidArgumentError(f"a cubemap needs {CUBEMAP_FACE_COUNT} faces, got {len(faces)}")
    first = faces[0]
    size = first.width
    if size == 0 or first.height != size:
        raise InvalidArgumentError(f"cubemap faces must be square and non-empty, got {first.width}x{first.height}")
    for face, buffer in zip(CubemapFace, faces):
        if buffer.width != size or buffer.height != size:
            raise InvalidArgumentError(
                f"{face.name.lower()} face is {buffer.width}x{buffer.height}, expected {size}x{size}"
            )
        if buffer.format != first.format:
            raise InvalidArgumentError(
                f"{face.name.lower()} face is {buffer.format.name}, expected {first.format.name}"
            )
    data = np.concatenate([buffer.pixels().reshape(-1) for buffer in faces])
    logger.debug("cubemap.create face=%dx%d format=%s", size, size, first.format.name)
    return ImageBuffer(Storage(data, StorageMode.OWNED), size, size * CUBEMAP_FACE_COUNT, first.format)


def get_cubemap_face(cubemap: ImageBuffer, face: CubemapFace) -> ImageBuffer:
    """Return a sub-image view of one face of an assembled cubemap."""

    size = cubemap.width
    if size == 0 or cubemap.height != size * CUBEMAP_FACE_COUNT:
        raise InvalidArgumentError(f"{cubemap.width}x{cubemap.height} buffer is not a cubemap")
    try:
        face = CubemapFace(face)
    except ValueError:
        raise OutOfRangeError(f"cubemap face {face!r} is not one of 0..{CUBEMAP_FACE_COUNT - 1}") from None
    return ImageBuffer.create_subimage(cubemap, 0, face * size, size, size)


__all__ = ["CubemapFace", "CUBEMAP_FACE_COUNT", "create_cubemap", "get_cubemap_face"]
