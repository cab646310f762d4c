"""Tone mapping subsystem entry points."""

from .config import DEFAULT_TONEMAP_CONFIG, ToneMapConfig
from .core import apply_tone_mapping, tone_map_color
from .exceptions import ToneMapConfigError, ToneMapError, VerificationError
from .operators import ToneMapping, string_to_tone_mapping, tone_mapping_names
from .verify import compare_buffers

__all__ = [
    "ToneMapConfig",
    "DEFAULT_TONEMAP_CONFIG",
    "ToneMapping",
    "apply_tone_mapping",
    "tone_map_color",
    "string_to_tone_mapping",
    "tone_mapping_names",
    "compare_buffers",
    "ToneMapError",
    "ToneMapConfigError",
    "VerificationError",
]
