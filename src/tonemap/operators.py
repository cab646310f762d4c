"""Built-in tone mapping curves.

Every operator maps linear RGB (an ``(..., 3)`` float array) to display RGB
in ``[0, 1]``; quantisation to 8-bit happens once in :func:`tone_map_array`.
Curves other than Hejl-Richard finish with a ``1/gamma`` encode; the
Hejl-Richard fit already includes it.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Callable, Final, Optional

import numpy as np

from src.image_buffer.formats import ValueDomain
from src.image_buffer.values import convert_array

if TYPE_CHECKING:
    from .config import ToneMapConfig


class ToneMapping(IntEnum):
    GAMMA_CORRECTION = 0
    REINHARD = 1
    HEJIL_RICHARD = 2
    UNCHARTED = 3
    ACES = 4
    GRAN_TURISMO = 5


Curve = Callable[[np.ndarray, "ToneMapConfig"], np.ndarray]

_CANONICAL_NAMES: Final[dict[ToneMapping, str]] = {
    ToneMapping.GAMMA_CORRECTION: "gamma_correction",
    ToneMapping.REINHARD: "reinhard",
    ToneMapping.HEJIL_RICHARD: "hejil_richard",
    ToneMapping.UNCHARTED: "uncharted",
    ToneMapping.ACES: "aces",
    ToneMapping.GRAN_TURISMO: "gran_turismo",
}

_ALIAS_NAMES: Final[dict[str, ToneMapping]] = {
    "hejl_richard": ToneMapping.HEJIL_RICHARD,
}

_NAME_TO_TONE_MAPPING: Final[dict[str, ToneMapping]] = {
    **{name: op for op, name in _CANONICAL_NAMES.items()},
    **_ALIAS_NAMES,
}

# Hable's filmic curve coefficients
_HABLE_A = 0.15
_HABLE_B = 0.50
_HABLE_C = 0.10
_HABLE_D = 0.20
_HABLE_E = 0.02
_HABLE_F = 0.30

# inputs are clamped to the largest half-float before the curves run
_LINEAR_LIMIT = 65504.0


def _normalise_name(name: str) -> str:
    return "_".join(name.strip().lower().replace("-", " ").split())


def string_to_tone_mapping(name: str) -> Optional[ToneMapping]:
    """Map a tone mapping name to its operator, or ``None`` when unrecognised.

    Matching is case-insensitive and treats ``-``, spaces and ``_`` alike.
    """

    if not isinstance(name, str):
        return None
    return _NAME_TO_TONE_MAPPING.get(_normalise_name(name))


def tone_mapping_name(tone_mapping: ToneMapping) -> str:
    return _CANONICAL_NAMES[ToneMapping(tone_mapping)]


def tone_mapping_names() -> tuple[str, ...]:
    return tuple(_CANONICAL_NAMES.values())


def _encode_gamma(values: np.ndarray, gamma: float) -> np.ndarray:
    return np.power(np.maximum(values, 0.0), 1.0 / gamma)


def gamma_correction(rgb: np.ndarray, cfg: ToneMapConfig) -> np.ndarray:
    return _encode_gamma(np.clip(rgb, 0.0, 1.0), cfg.gamma)


def reinhard(rgb: np.ndarray, cfg: ToneMapConfig) -> np.ndarray:
    return _encode_gamma(rgb / (1.0 + rgb), cfg.gamma)


def hejil_richard(rgb: np.ndarray, cfg: ToneMapConfig) -> np.ndarray:
    x = np.maximum(rgb - 0.004, 0.0)
    return (x * (6.2 * x + 0.5)) / (x * (6.2 * x + 1.7) + 0.06)


def _hable(x: np.ndarray | float) -> np.ndarray | float:
    numerator = x * (_HABLE_A * x + _HABLE_C * _HABLE_B) + _HABLE_D * _HABLE_E
    denominator = x * (_HABLE_A * x + _HABLE_B) + _HABLE_D * _HABLE_F
    return numerator / denominator - _HABLE_E / _HABLE_F


def uncharted(rgb: np.ndarray, cfg: ToneMapConfig) -> np.ndarray:
    mapped = _hable(cfg.uncharted_exposure_bias * rgb)
    white_scale = 1.0 / _hable(cfg.uncharted_white_point)
    return _encode_gamma(mapped * white_scale, cfg.gamma)


def aces(rgb: np.ndarray, cfg: ToneMapConfig) -> np.ndarray:
    mapped = (rgb * (2.51 * rgb + 0.03)) / (rgb * (2.43 * rgb + 0.59) + 0.14)
    return _encode_gamma(mapped, cfg.gamma)


def _smoothstep(edge0: float, edge1: float, x: np.ndarray) -> np.ndarray:
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def gran_turismo(rgb: np.ndarray, cfg: ToneMapConfig) -> np.ndarray:
    """Uchimura's Gran Turismo curve: toe, linear section and exponential shoulder."""

    peak = cfg.gt_max_brightness
    contrast = cfg.gt_contrast
    start = cfg.gt_linear_start
    length = cfg.gt_linear_length
    black = cfg.gt_black_tightness
    pedestal = cfg.gt_pedestal

    l0 = ((peak - start) * length) / contrast
    s0 = start + l0
    s1 = start + contrast * l0
    c2 = (contrast * peak) / (peak - s1)
    cp = -c2 / peak

    w0 = 1.0 - _smoothstep(0.0, start, rgb)
    w2 = (rgb >= s0).astype(np.float64)
    w1 = 1.0 - w0 - w2

    toe = start * np.power(rgb / start, black) + pedestal
    shoulder = peak - (peak - s1) * np.exp(cp * (rgb - s0))
    linear = start + contrast * (rgb - start)
    return _encode_gamma(toe * w0 + linear * w1 + shoulder * w2, cfg.gamma)


_CURVES: Final[dict[ToneMapping, Curve]] = {
    ToneMapping.GAMMA_CORRECTION: gamma_correction,
    ToneMapping.REINHARD: reinhard,
    ToneMapping.HEJIL_RICHARD: hejil_richard,
    ToneMapping.UNCHARTED: uncharted,
    ToneMapping.ACES: aces,
    ToneMapping.GRAN_TURISMO: gran_turismo,
}


def get_operator(tone_mapping: ToneMapping) -> Curve:
    return _CURVES[ToneMapping(tone_mapping)]


def tone_map_array(rgb: np.ndarray, tone_mapping: ToneMapping, cfg: ToneMapConfig) -> np.ndarray:
    """Apply a built-in operator to ``(..., 3)`` linear values and quantise to ``uint8``."""

    linear = np.asarray(rgb, dtype=np.float64) * cfg.exposure
    linear = np.clip(np.nan_to_num(linear, nan=0.0, posinf=_LINEAR_LIMIT), 0.0, _LINEAR_LIMIT)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        display = get_operator(tone_mapping)(linear, cfg)
    return convert_array(display, ValueDomain.FLOAT, ValueDomain.LDR)


__all__ = [
    "ToneMapping",
    "string_to_tone_mapping",
    "tone_mapping_name",
    "tone_mapping_names",
    "gamma_correction",
    "reinhard",
    "hejil_richard",
    "uncharted",
    "aces",
    "gran_turismo",
    "get_operator",
    "tone_map_array",
]
