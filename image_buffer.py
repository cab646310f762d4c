"""Public entry point and command-line interface for the pixel buffer engine."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, cast

import click
from rich.console import Console
from rich.table import Table

from src.config_loader import ConfigError, default_config, load_config
from src.datatypes import AppConfig, ResizeFilter
from src.image_buffer import (
    Channel,
    CubemapFace,
    DanglingParentError,
    Format,
    FormatMismatchError,
    ImageBuffer,
    ImageBufferError,
    InvalidArgumentError,
    OutOfRangeError,
    PixelIterator,
    PixelView,
    StaleViewError,
    ValueDomain,
    create_cubemap,
    get_cubemap_face,
)
from src.image_buffer import formats as _formats
from src.image_buffer.formats import parse_format
from src.tonemap import (
    ToneMapConfig,
    ToneMapConfigError,
    ToneMapError,
    ToneMapping,
    apply_tone_mapping,
    string_to_tone_mapping,
    tone_map_color,
    tone_mapping_names,
)

__all__ = (
    "main",
    "ImageBuffer",
    "PixelView",
    "PixelIterator",
    "Format",
    "Channel",
    "ValueDomain",
    "CubemapFace",
    "create_cubemap",
    "get_cubemap_face",
    "ToneMapping",
    "ToneMapConfig",
    "apply_tone_mapping",
    "string_to_tone_mapping",
    "ImageBufferError",
    "OutOfRangeError",
    "FormatMismatchError",
    "InvalidArgumentError",
    "DanglingParentError",
    "StaleViewError",
    "ToneMapError",
    "ConfigError",
)

logger = logging.getLogger("image_buffer")


def _app_config(ctx: click.Context) -> AppConfig:
    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    return cast(AppConfig, params["config"])


def _console(ctx: click.Context) -> Console:
    cfg = _app_config(ctx)
    return Console(no_color=not cfg.cli.color, highlight=False)


def _emit_json(payload: Any, cfg: AppConfig) -> None:
    if cfg.cli.json_pretty:
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo(json.dumps(payload, separators=(",", ":")))


def _parse_size(value: str) -> tuple[int, int]:
    try:
        width_text, height_text = value.lower().split("x", 1)
        return int(width_text), int(height_text)
    except ValueError:
        raise click.BadParameter(f"expected WIDTHxHEIGHT, got '{value}'") from None


def _gradient(width: int, height: int, fmt: Format, peak: float) -> ImageBuffer:
    """Horizontal red ramp, vertical green ramp, constant blue, in linear float."""

    buffer = ImageBuffer.create(width, height, _formats.to_float_format(fmt))
    for view in buffer:
        red = peak * (view.x + 0.5) / width
        green = peak * (view.y + 0.5) / height
        view.set_color((red, green, 0.25 * peak, 1.0), ValueDomain.FLOAT)
    buffer.convert(fmt)
    return buffer


@click.group()
@click.option("--config", "config_path", default=None, help="Path to an image-buffer TOML config.")
@click.option("--verbose", is_flag=True, help="Show debug logging from the buffer engine.")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """Inspect pixel formats and tone mapping curves."""

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(message)s")
    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    if config_path is None:
        params["config"] = default_config()
        return
    logger.debug("loading config from %s", config_path)
    try:
        params["config"] = load_config(config_path)
    except FileNotFoundError:
        raise click.ClickException(f"Config file not found: {config_path}") from None
    except ConfigError as exc:
        raise click.ClickException(f"Config parsing failed: {exc}") from exc


@main.command("formats")
@click.option("--json", "json_mode", is_flag=True, help="Emit machine-readable output.")
@click.pass_context
def formats_command(ctx: click.Context, json_mode: bool) -> None:
    """List every pixel format and its derived properties."""

    rows = [
        {
            "format": fmt.name,
            "channels": _formats.get_channel_count(fmt),
            "channel_size": _formats.get_channel_size(fmt),
            "pixel_size": _formats.get_pixel_size(fmt),
            "alpha": _formats.has_alpha(fmt),
            "domain": _formats.get_domain(fmt).value,
        }
        for fmt in _formats.concrete_formats()
    ]
    if json_mode:
        _emit_json(rows, _app_config(ctx))
        return
    table = Table(title="Pixel formats")
    for column in ("format", "channels", "channel_size", "pixel_size", "alpha", "domain"):
        table.add_column(column)
    for row in rows:
        table.add_row(*(str(value) for value in row.values()))
    _console(ctx).print(table)


@main.command("tonemap-names")
@click.pass_context
def tonemap_names_command(ctx: click.Context) -> None:
    """List accepted tone mapping operator names."""

    console = _console(ctx)
    for name in tone_mapping_names():
        console.print(name)


@main.command("curve")
@click.argument("operator")
@click.option("--samples", type=click.IntRange(min=2), default=9, show_default=True, help="Ramp sample count.")
@click.option("--max-value", type=click.FloatRange(min=0.0), default=4.0, show_default=True, help="Largest linear input.")
@click.option("--gamma", type=float, default=None, help="Override [tonemap].gamma.")
@click.option("--exposure", type=float, default=None, help="Override [tonemap].exposure.")
@click.option("--json", "json_mode", is_flag=True, help="Emit machine-readable output.")
@click.pass_context
def curve_command(
    ctx: click.Context,
    operator: str,
    samples: int,
    max_value: float,
    gamma: Optional[float],
    exposure: Optional[float],
    json_mode: bool,
) -> None:
    """Tabulate OPERATOR's response over a linear grey ramp."""

    cfg = _app_config(ctx)
    tone_mapping = string_to_tone_mapping(operator)
    if tone_mapping is None:
        raise click.BadParameter(
            f"unknown operator '{operator}'; expected one of {', '.join(tone_mapping_names())}",
            param_hint="OPERATOR",
        )
    overrides = {key: value for key, value in (("gamma", gamma), ("exposure", exposure)) if value is not None}
    tm_cfg = (cfg.tonemap or ToneMapConfig()).merged(**overrides)
    try:
        tm_cfg = tm_cfg.resolved()
    except ToneMapConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    points = []
    for index in range(samples):
        linear = max_value * index / (samples - 1)
        mapped = tone_map_color(tone_mapping, (linear, linear, linear), tm_cfg)
        points.append({"input": round(linear, 6), "output": mapped[0]})

    if json_mode:
        _emit_json({"operator": operator, "config": tm_cfg.as_dict(), "points": points}, cfg)
        return
    table = Table(title=f"{operator} (gamma={tm_cfg.gamma:g}, exposure={tm_cfg.exposure:g})")
    table.add_column("linear", justify="right")
    table.add_column("8-bit", justify="right")
    for point in points:
        table.add_row(f"{point['input']:.4f}", str(point["output"]))
    _console(ctx).print(table)


@main.command("sample")
@click.option("--width", type=click.IntRange(min=1), default=4, show_default=True)
@click.option("--height", type=click.IntRange(min=1), default=4, show_default=True)
@click.option("--format", "format_name", default=None, help="Pixel format; defaults to [buffer].default_format.")
@click.option("--resize", "resize_to", default=None, help="Resample to WIDTHxHEIGHT with [buffer].resize_filter.")
@click.option("--filter", "filter_name", type=click.Choice([item.value for item in ResizeFilter]), default=None)
@click.option("--tonemap", "operator", default=None, help="Tone map the result with this operator.")
@click.option("--peak", type=float, default=1.0, show_default=True, help="Peak linear value of the gradient.")
@click.option("--json", "json_mode", is_flag=True, help="Emit machine-readable output.")
@click.pass_context
def sample_command(
    ctx: click.Context,
    width: int,
    height: int,
    format_name: Optional[str],
    resize_to: Optional[str],
    filter_name: Optional[str],
    operator: Optional[str],
    peak: float,
    json_mode: bool,
) -> None:
    """Build a gradient test buffer and print its pixels."""

    cfg = _app_config(ctx)
    try:
        fmt = parse_format(format_name or cfg.buffer.default_format)
        buffer = _gradient(width, height, fmt, peak)
        if resize_to:
            new_width, new_height = _parse_size(resize_to)
            resize_filter = ResizeFilter(filter_name) if filter_name else cfg.buffer.resize_filter
            buffer.resize(new_width, new_height, resize_filter)
        if operator:
            buffer = apply_tone_mapping(buffer, operator, cfg.tonemap)
    except ImageBufferError as exc:
        raise click.ClickException(str(exc)) from exc

    domain = buffer.domain
    pixels = [
        {"x": view.x, "y": view.y, "value": list(view.get_color(domain))}
        for view in buffer
    ]
    summary = {
        "width": buffer.width,
        "height": buffer.height,
        "format": buffer.format.name,
        "pixel_size": buffer.pixel_size,
        "bytes": buffer.size,
    }
    if json_mode:
        _emit_json({**summary, "pixels": pixels}, cfg)
        return
    console = _console(ctx)
    console.print(
        f"{summary['width']}x{summary['height']} {summary['format']} "
        f"({summary['pixel_size']} bytes/pixel, {summary['bytes']} bytes)"
    )
    table = Table()
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    table.add_column(domain.value)
    for pixel in pixels:
        rendered = ", ".join(f"{value:.4f}" if isinstance(value, float) else str(value) for value in pixel["value"])
        table.add_row(str(pixel["x"]), str(pixel["y"]), rendered)
    console.print(table)


if __name__ == "__main__":  # pragma: no cover
    main()
