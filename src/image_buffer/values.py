"""Cross-domain conversion of channel values.

Three domains are supported: 8-bit fixed point (LDR), 16-bit fixed point (HDR)
and 32-bit float. Fixed-point values are normalised against their domain
maximum; float values are clamped to ``[0, 1]`` and rounded half-up when they
are quantised. NaN quantises to zero.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from .exceptions import OutOfRangeError
from .formats import ValueDomain

_LDR_TO_HDR_SCALE = 257  # 65535 / 255


def _check_fixed(value: Any, domain: ValueDomain) -> int:
    numeric = int(value)
    if numeric != value or numeric < 0 or numeric > domain.max_value:
        raise OutOfRangeError(f"{value!r} is not a valid {domain.value} value (0..{domain.max_value})")
    return numeric


def _quantise(value: float, maximum: int) -> int:
    if math.isnan(value):
        return 0
    clamped = min(max(value, 0.0), 1.0)
    return int(math.floor(clamped * maximum + 0.5))


def to_float_value(value: Any, domain: ValueDomain) -> float:
    """Return *value* (expressed in *domain*) as a linear float."""

    domain = ValueDomain(domain)
    if domain is ValueDomain.FLOAT:
        return float(value)
    return _check_fixed(value, domain) / float(domain.max_value)


def to_ldr_value(value: Any, domain: ValueDomain) -> int:
    """Return *value* (expressed in *domain*) as an 8-bit value."""

    domain = ValueDomain(domain)
    if domain is ValueDomain.LDR:
        return _check_fixed(value, domain)
    return _quantise(to_float_value(value, domain), 255)


def to_hdr_value(value: Any, domain: ValueDomain) -> int:
    """Return *value* (expressed in *domain*) as a 16-bit value."""

    domain = ValueDomain(domain)
    if domain is ValueDomain.HDR:
        return _check_fixed(value, domain)
    if domain is ValueDomain.LDR:
        return _check_fixed(value, domain) * _LDR_TO_HDR_SCALE
    return _quantise(float(value), 65535)


def convert_value(value: Any, source: ValueDomain, target: ValueDomain) -> int | float:
    target = ValueDomain(target)
    if target is ValueDomain.LDR:
        return to_ldr_value(value, source)
    if target is ValueDomain.HDR:
        return to_hdr_value(value, source)
    return to_float_value(value, source)


def convert_array(values: np.ndarray, source: ValueDomain, target: ValueDomain) -> np.ndarray:
    """Vectorised :func:`convert_value`; always returns a new array of the target dtype."""

    source = ValueDomain(source)
    target = ValueDomain(target)
    array = np.asarray(values)
    if source is target:
        return array.astype(target.dtype, copy=True)
    if source is ValueDomain.LDR and target is ValueDomain.HDR:
        return (array.astype(np.uint32) * _LDR_TO_HDR_SCALE).astype(target.dtype)

    if source is ValueDomain.FLOAT:
        linear = array.astype(np.float64)
    else:
        linear = array.astype(np.float64) / float(source.max_value)
    if target is ValueDomain.FLOAT:
        return linear.astype(target.dtype)

    linear = np.nan_to_num(linear, nan=0.0, posinf=1.0, neginf=0.0)
    quantised = np.floor(np.clip(linear, 0.0, 1.0) * target.max_value + 0.5)
    return quantised.astype(target.dtype)


__all__ = [
    "to_float_value",
    "to_ldr_value",
    "to_hdr_value",
    "convert_value",
    "convert_array",
]
