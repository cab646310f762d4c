from __future__ import annotations

import math

import numpy as np
import pytest

from src.image_buffer.exceptions import OutOfRangeError
from src.image_buffer.formats import ValueDomain
from src.image_buffer.values import (
    convert_array,
    convert_value,
    to_float_value,
    to_hdr_value,
    to_ldr_value,
)


def test_ldr_widens_exactly_to_hdr() -> None:
    assert to_hdr_value(0, ValueDomain.LDR) == 0
    assert to_hdr_value(1, ValueDomain.LDR) == 257
    assert to_hdr_value(255, ValueDomain.LDR) == 65535


def test_fixed_point_to_float_normalises() -> None:
    assert to_float_value(255, ValueDomain.LDR) == 1.0
    assert to_float_value(0, ValueDomain.HDR) == 0.0
    assert to_float_value(65535, ValueDomain.HDR) == 1.0
    assert to_float_value(51, ValueDomain.LDR) == pytest.approx(0.2)


def test_float_quantisation_rounds_half_up_and_clamps() -> None:
    assert to_ldr_value(0.5, ValueDomain.FLOAT) == 128
    assert to_ldr_value(-3.0, ValueDomain.FLOAT) == 0
    assert to_ldr_value(7.5, ValueDomain.FLOAT) == 255
    assert to_hdr_value(1.0, ValueDomain.FLOAT) == 65535
    assert to_ldr_value(math.nan, ValueDomain.FLOAT) == 0


def test_hdr_narrows_to_ldr() -> None:
    assert to_ldr_value(65535, ValueDomain.HDR) == 255
    assert to_ldr_value(257 * 100, ValueDomain.HDR) == 100
    assert to_ldr_value(32768, ValueDomain.HDR) == 128


def test_fixed_point_values_outside_domain_raise() -> None:
    with pytest.raises(OutOfRangeError):
        to_float_value(256, ValueDomain.LDR)
    with pytest.raises(OutOfRangeError):
        to_ldr_value(-1, ValueDomain.LDR)
    with pytest.raises(OutOfRangeError):
        to_hdr_value(65536, ValueDomain.HDR)


def test_ldr_survives_a_trip_through_every_domain() -> None:
    for value in range(256):
        hdr = convert_value(value, ValueDomain.LDR, ValueDomain.HDR)
        assert convert_value(hdr, ValueDomain.HDR, ValueDomain.LDR) == value
        linear = convert_value(value, ValueDomain.LDR, ValueDomain.FLOAT)
        assert convert_value(linear, ValueDomain.FLOAT, ValueDomain.LDR) == value


def test_convert_array_matches_scalar_conversion() -> None:
    source = np.array([0.0, 0.25, 0.5, 1.0, 2.0, -1.0, np.nan], dtype=np.float32)
    converted = convert_array(source, ValueDomain.FLOAT, ValueDomain.LDR)
    assert converted.dtype == np.uint8
    expected = [convert_value(float(value), ValueDomain.FLOAT, ValueDomain.LDR) for value in source]
    assert converted.tolist() == expected


def test_convert_array_returns_a_copy_for_identical_domains() -> None:
    source = np.arange(4, dtype=np.uint8)
    converted = convert_array(source, ValueDomain.LDR, ValueDomain.LDR)
    converted[0] = 99
    assert source[0] == 0


def test_hdr_float_round_trip_within_one() -> None:
    hdr = np.arange(0, 65536, dtype=np.uint16)
    linear = convert_array(hdr, ValueDomain.HDR, ValueDomain.FLOAT)
    back = convert_array(linear, ValueDomain.FLOAT, ValueDomain.HDR)
    assert int(np.max(np.abs(back.astype(np.int64) - hdr.astype(np.int64)))) <= 1
