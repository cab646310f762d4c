"""Tone mapping pipeline: float-domain buffers in, LDR buffers out."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Union

import numpy as np

from src.image_buffer.buffer import ImageBuffer
from src.image_buffer.formats import Channel, Format, ValueDomain, to_float_format
from src.image_buffer.values import convert_array

from .config import DEFAULT_TONEMAP_CONFIG, ToneMapConfig
from .exceptions import ToneMapError
from .operators import ToneMapping, string_to_tone_mapping, tone_map_array, tone_mapping_name

logger = logging.getLogger(__name__)

ToneMapper = Callable[[tuple[float, float, float]], Sequence[int]]
ToneMappingSpec = Union[ToneMapping, str, ToneMapper, None]


def _resolve_tone_mapping(spec: ToneMappingSpec, cfg: ToneMapConfig) -> ToneMapping | ToneMapper:
    if spec is None:
        return cfg.tone_mapping
    if isinstance(spec, ToneMapping):
        return spec
    if isinstance(spec, str):
        resolved = string_to_tone_mapping(spec)
        if resolved is None:
            raise ToneMapError(f"unknown tone mapping operator '{spec}'")
        return resolved
    if isinstance(spec, int):
        try:
            return ToneMapping(spec)
        except ValueError:
            raise ToneMapError(f"unknown tone mapping operator {spec!r}") from None
    if callable(spec):
        return spec
    raise ToneMapError(f"tone mapping must be an operator or a callable, got {type(spec).__name__}")


def _checked_output(mapped: Sequence[int]) -> tuple[int, int, int]:
    try:
        values = tuple(int(value) for value in mapped)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ToneMapError(f"tone mapper returned {mapped!r}: {exc}") from exc
    if any(value != original for value, original in zip(values, mapped)):
        raise ToneMapError(f"tone mapper must return whole numbers, got {mapped!r}")
    if len(values) != 3 or any(value < 0 or value > 255 for value in values):
        raise ToneMapError(f"tone mapper must return three values in 0..255, got {mapped!r}")
    return values  # type: ignore[return-value]


def _map_with_callback(rgb: np.ndarray, tone_mapper: ToneMapper) -> np.ndarray:
    mapped = np.empty(rgb.shape, dtype=np.uint8)
    source = rgb.reshape(-1, 3)
    target = mapped.reshape(-1, 3)
    for index, pixel in enumerate(source):
        target[index] = _checked_output(tone_mapper((float(pixel[0]), float(pixel[1]), float(pixel[2]))))
    return mapped


def tone_map_color(
    tone_mapping: ToneMappingSpec,
    rgb: Sequence[float],
    config: Optional[ToneMapConfig] = None,
) -> tuple[int, int, int]:
    """Tone map a single linear RGB color to 8-bit."""

    cfg = (config or DEFAULT_TONEMAP_CONFIG).resolved()
    operator = _resolve_tone_mapping(tone_mapping, cfg)
    if len(rgb) != 3:
        raise ToneMapError(f"expected an RGB triple, got {len(rgb)} components")
    if isinstance(operator, ToneMapping):
        mapped = tone_map_array(np.asarray(rgb, dtype=np.float64), operator, cfg)
        return int(mapped[0]), int(mapped[1]), int(mapped[2])
    return _checked_output(operator((float(rgb[0]), float(rgb[1]), float(rgb[2]))))


def apply_tone_mapping(
    buffer: ImageBuffer,
    tone_mapping: ToneMappingSpec = None,
    config: Optional[ToneMapConfig] = None,
) -> ImageBuffer:
    """Return a new ``RGB8``/``RGBA8`` buffer holding *buffer* tone mapped to display range.

    *tone_mapping* is a built-in operator (enum or name) or a callable taking a
    linear ``(r, g, b)`` float triple and returning three 8-bit values; the
    callable replaces the built-in curve entirely and receives the values
    without exposure applied. ``None`` uses the operator named by *config*.
    Non-float sources are converted on a copy first; alpha is carried over.
    """

    cfg = (config or DEFAULT_TONEMAP_CONFIG).resolved()
    operator = _resolve_tone_mapping(tone_mapping, cfg)

    source = buffer if buffer.is_float_format else buffer.copy(to_float_format(buffer.format))
    values = source.to_array()
    rgb = values[..., :3]

    if isinstance(operator, ToneMapping):
        mapped = tone_map_array(rgb, operator, cfg)
        label = tone_mapping_name(operator)
    else:
        mapped = _map_with_callback(rgb, operator)
        label = getattr(operator, "__name__", "callback")

    target_format = Format.RGBA8 if source.has_alpha_channel else Format.RGB8
    result = ImageBuffer.create(source.width, source.height, target_format)
    output = result.to_array()
    output[..., :3] = mapped
    if source.has_alpha_channel:
        output[..., Channel.ALPHA] = convert_array(values[..., Channel.ALPHA], ValueDomain.FLOAT, ValueDomain.LDR)

    logger.info(
        "tonemap.apply operator=%s size=%dx%d source=%s target=%s gamma=%.2f exposure=%.3f fingerprint=%s",
        label,
        source.width,
        source.height,
        buffer.format.name,
        target_format.name,
        cfg.gamma,
        cfg.exposure,
        cfg.fingerprint(),
    )
    return result
