"""Verification metrics comparing two buffers, e.g. a reference and a tone mapped render."""

from __future__ import annotations

import logging
import math
from typing import Callable

import numpy as np

from src.image_buffer.buffer import ImageBuffer
from src.image_buffer.formats import ValueDomain
from src.image_buffer.values import convert_array

from .exceptions import VerificationError

logger = logging.getLogger(__name__)


def _buffer_to_array(buffer: ImageBuffer) -> np.ndarray:
    values = convert_array(buffer.to_array()[..., :3], buffer.domain, ValueDomain.FLOAT)
    return values.astype(np.float64)


def _metric_absdiff(ref: np.ndarray, test: np.ndarray) -> dict[str, float]:
    delta = np.abs(test - ref)
    return {"avg": float(delta.mean()), "max": float(delta.max())}


def _metric_psnr(ref: np.ndarray, test: np.ndarray) -> dict[str, float]:
    # peak signal is 1.0 in the normalised float domain
    error = float(np.square(test - ref).mean())
    if error == 0.0:
        return {"psnr": math.inf}
    return {"psnr": -10.0 * math.log10(error)}


_SSIM_K1 = 0.01
_SSIM_K2 = 0.03


def _metric_ssim(ref: np.ndarray, test: np.ndarray) -> dict[str, float]:
    """Global (single window) SSIM averaged over the RGB channels."""

    stab_mean = _SSIM_K1 * _SSIM_K1
    stab_var = _SSIM_K2 * _SSIM_K2
    ref_ch = ref.reshape(-1, ref.shape[-1])
    test_ch = test.reshape(-1, test.shape[-1])
    mean_ref = ref_ch.mean(axis=0)
    mean_test = test_ch.mean(axis=0)
    var_ref = ref_ch.var(axis=0)
    var_test = test_ch.var(axis=0)
    covariance = ((ref_ch - mean_ref) * (test_ch - mean_test)).mean(axis=0)
    luminance = (2.0 * mean_ref * mean_test + stab_mean) / (mean_ref**2 + mean_test**2 + stab_mean)
    structure = (2.0 * covariance + stab_var) / (var_ref + var_test + stab_var)
    return {"ssim": float(np.mean(luminance * structure))}


_METRICS: dict[str, Callable[[np.ndarray, np.ndarray], dict[str, float]]] = {
    "abs": _metric_absdiff,
    "psnr": _metric_psnr,
    "ssim": _metric_ssim,
}

METRICS = tuple(_METRICS)


def compare_buffers(reference: ImageBuffer, test: ImageBuffer, metric: str = "abs") -> dict[str, float]:
    """Compare the RGB channels of two equally sized buffers in the float domain."""

    key = metric.strip().lower()
    if key not in _METRICS:
        raise VerificationError(f"metric '{metric}' unsupported; expected one of {list(METRICS)}")
    if (reference.width, reference.height) != (test.width, test.height):
        raise VerificationError(
            f"cannot compare {reference.width}x{reference.height} with {test.width}x{test.height}"
        )
    if reference.pixel_count == 0:
        raise VerificationError("cannot compare empty buffers")

    scores = _METRICS[key](_buffer_to_array(reference), _buffer_to_array(test))
    logger.debug("tonemap.verify metric=%s scores=%s", key, scores)
    return scores
