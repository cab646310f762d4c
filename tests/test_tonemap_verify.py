from __future__ import annotations

import math

import pytest

from src.image_buffer import Format, ImageBuffer
from src.tonemap.exceptions import VerificationError
from src.tonemap.verify import compare_buffers


def _flat(fmt: Format, value: float) -> ImageBuffer:
    buffer = ImageBuffer.create(2, 2, fmt)
    buffer.clear((value, value, value, 1.0))
    return buffer


def test_identical_buffers_compare_equal() -> None:
    reference = _flat(Format.RGBA8, 0.5)
    assert compare_buffers(reference, reference.copy()) == {"avg": 0.0, "max": 0.0}
    assert compare_buffers(reference, reference.copy(), "psnr") == {"psnr": math.inf}
    assert compare_buffers(reference, reference.copy(), "SSIM")["ssim"] == pytest.approx(1.0)


def test_comparison_spans_formats() -> None:
    reference = _flat(Format.RGB32, 1.0)
    test = _flat(Format.RGBA8, 0.0)
    assert compare_buffers(reference, test) == {"avg": 1.0, "max": 1.0}
    assert compare_buffers(reference, test, "psnr")["psnr"] == pytest.approx(0.0)


def test_compare_rejects_bad_inputs() -> None:
    reference = _flat(Format.RGB8, 0.0)
    with pytest.raises(VerificationError):
        compare_buffers(reference, reference, "lpips")
    with pytest.raises(VerificationError):
        compare_buffers(reference, ImageBuffer.create(3, 2, Format.RGB8))
    empty = ImageBuffer.create(0, 0, Format.RGB8)
    with pytest.raises(VerificationError):
        compare_buffers(empty, empty)
