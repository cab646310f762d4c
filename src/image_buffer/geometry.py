"""Resampling and flipping kernels shared by :class:`ImageBuffer`."""

from __future__ import annotations

import numpy as np

from .formats import ValueDomain


def flip_rows(region: np.ndarray) -> None:
    """Reverse the row order of *region* in place."""

    region[...] = region[::-1].copy()


def flip_columns(region: np.ndarray) -> None:
    """Reverse the column order of *region* in place."""

    region[...] = region[:, ::-1].copy()


def _nearest_indices(source: int, target: int) -> np.ndarray:
    positions = np.floor((np.arange(target) + 0.5) * source / target).astype(np.intp)
    return np.minimum(positions, source - 1)


def resize_nearest(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """Nearest-neighbour resample of a ``(h, w, n)`` array; samples are copied byte-exact.

    Target pixel ``i`` samples source pixel ``floor((i + 0.5) * src / dst)``.
    """

    src_height, src_width, depth = pixels.shape
    if width == 0 or height == 0 or src_width == 0 or src_height == 0:
        return np.zeros((height, width, depth), dtype=pixels.dtype)
    rows = _nearest_indices(src_height, height)
    cols = _nearest_indices(src_width, width)
    return pixels[rows[:, None], cols[None, :]]


def _bilinear_axis(source: int, target: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    positions = (np.arange(target, dtype=np.float64) + 0.5) * source / target - 0.5
    positions = np.clip(positions, 0.0, source - 1)
    lower = np.floor(positions).astype(np.intp)
    upper = np.minimum(lower + 1, source - 1)
    return lower, upper, positions - lower


def resize_bilinear(values: np.ndarray, width: int, height: int, domain: ValueDomain) -> np.ndarray:
    """Bilinear resample of typed channel values with half-pixel centres and edge clamping."""

    src_height, src_width, channels = values.shape
    domain = ValueDomain(domain)
    dtype = domain.dtype
    if width == 0 or height == 0 or src_width == 0 or src_height == 0:
        return np.zeros((height, width, channels), dtype=dtype)
    row0, row1, fy = _bilinear_axis(src_height, height)
    col0, col1, fx = _bilinear_axis(src_width, width)
    source = values.astype(np.float64)
    wx = fx[None, :, None]
    top = source[row0[:, None], col0[None, :]] * (1.0 - wx) + source[row0[:, None], col1[None, :]] * wx
    bottom = source[row1[:, None], col0[None, :]] * (1.0 - wx) + source[row1[:, None], col1[None, :]] * wx
    wy = fy[:, None, None]
    blended = top * (1.0 - wy) + bottom * wy
    if domain is ValueDomain.FLOAT:
        return blended.astype(dtype)
    return np.floor(np.clip(blended, 0, domain.max_value) + 0.5).astype(dtype)


__all__ = ["flip_rows", "flip_columns", "resize_nearest", "resize_bilinear"]
