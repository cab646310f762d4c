"""Format conversion kernels operating on typed ``(height, width, channels)`` arrays."""

from __future__ import annotations

import numpy as np

from .formats import Format, get_channel_count, get_domain
from .values import convert_array


def convert_pixels(values: np.ndarray, source: Format, target: Format) -> np.ndarray:
    """Return a new array holding *values* re-expressed in *target*.

    Domains are rescaled per :func:`convert_array`. A new alpha channel is
    filled with the opaque value of the target domain; a dropped one is
    discarded.
    """

    target_domain = get_domain(target)
    converted = convert_array(values, get_domain(source), target_domain)
    source_channels = get_channel_count(source)
    target_channels = get_channel_count(target)
    if target_channels == source_channels:
        return converted
    if target_channels < source_channels:
        return np.ascontiguousarray(converted[..., :target_channels])
    alpha = np.full(converted.shape[:-1] + (1,), target_domain.max_value, dtype=target_domain.dtype)
    return np.concatenate([converted, alpha], axis=-1)


def swap_channel_values(values: np.ndarray, first: int, second: int) -> None:
    """Exchange two channels of *values* in place."""

    if first == second:
        return
    values[..., [first, second]] = values[..., [second, first]]


__all__ = ["convert_pixels", "swap_channel_values"]
