"""Configuration dataclasses for the image buffer engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tonemap.config import ToneMapConfig


class ResizeFilter(str, Enum):
    """Resampling policies available to ``ImageBuffer.resize``."""

    NEAREST = "nearest"
    BILINEAR = "bilinear"


@dataclass
class BufferConfig:
    """Defaults applied when buffers are created or resized by the CLI and helpers."""

    resize_filter: ResizeFilter = ResizeFilter.NEAREST
    default_format: str = "RGBA8"


@dataclass
class CLIConfig:
    """CLI presentation controls."""

    color: bool = True
    json_pretty: bool = False


@dataclass
class AppConfig:
    """Aggregated configuration loaded from the user-provided TOML file."""

    buffer: BufferConfig = field(default_factory=BufferConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)
    tonemap: "ToneMapConfig | None" = None
