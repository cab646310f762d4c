from __future__ import annotations

import pytest
from click.testing import CliRunner

from src.image_buffer import Format, ImageBuffer


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()


@pytest.fixture
def numbered_rgba8() -> ImageBuffer:
    """4x3 RGBA8 buffer whose pixel (x, y) holds (x, y, x + 10 * y, 255)."""

    buffer = ImageBuffer.create(4, 3, Format.RGBA8)
    for view in buffer:
        buffer.set_pixel_color(view.x, view.y, (view.x, view.y, view.x + 10 * view.y, 255))
    return buffer
