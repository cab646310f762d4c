"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import tomllib
from dataclasses import fields
from typing import Any, TypeVar

from .datatypes import AppConfig, BufferConfig, CLIConfig, ResizeFilter
from .image_buffer.exceptions import InvalidArgumentError
from .image_buffer.formats import Format, parse_format
from .tonemap.config import ToneMapConfig
from .tonemap.exceptions import ToneMapConfigError


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or fails validation."""


_SectionT = TypeVar("_SectionT")


_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Accept TOML booleans plus 0/1 and yes/no/on/off spellings."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return value == 1
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ConfigError(f"{dotted_key} must be true or false, got {value!r}")


def _sanitize_section(raw: Any, name: str, cls: type[_SectionT]) -> _SectionT:
    """
    Build the ``cls`` dataclass for ``[name]`` from its raw TOML table.

    Boolean fields go through :func:`_coerce_bool`; everything else is passed
    through for the section validators.

    Raises:
        ConfigError: If the section is not a table or names a key ``cls`` lacks.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    known = {item.name: item for item in fields(cls)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigError(f"Invalid keys in [{name}]: {', '.join(unknown)}")
    values = {
        key: _coerce_bool(value, f"{name}.{key}") if known[key].type in (bool, "bool") else value
        for key, value in raw.items()
    }
    return cls(**values)


def _load_tonemap_section(raw: Any) -> ToneMapConfig:
    if not isinstance(raw, dict):
        raise ConfigError("[tonemap] must be a table")
    try:
        return ToneMapConfig.from_mapping(raw).resolved()
    except ToneMapConfigError as exc:
        raise ConfigError(f"tonemap.{exc}") from exc
    except TypeError as exc:
        raise ConfigError(f"Invalid [tonemap] values: {exc}") from exc


def _validate_buffer(buffer_cfg: BufferConfig) -> None:
    raw_filter = buffer_cfg.resize_filter
    filter_name = raw_filter.value if isinstance(raw_filter, ResizeFilter) else str(raw_filter)
    try:
        buffer_cfg.resize_filter = ResizeFilter(filter_name.strip().lower())
    except ValueError as exc:
        choices = ", ".join(f"'{item.value}'" for item in ResizeFilter)
        raise ConfigError(f"buffer.resize_filter must be one of {choices}") from exc
    try:
        fmt = parse_format(str(buffer_cfg.default_format))
    except InvalidArgumentError as exc:
        raise ConfigError(f"buffer.default_format: {exc}") from exc
    if fmt is Format.NONE:
        raise ConfigError("buffer.default_format must not be NONE")
    buffer_cfg.default_format = fmt.name


def parse_config_text(text: str) -> AppConfig:
    """Parse TOML *text* into a validated :class:`AppConfig`."""

    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc

    unknown = sorted(set(raw) - {"buffer", "cli", "tonemap"})
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(unknown)}")

    app = AppConfig(
        buffer=_sanitize_section(raw.get("buffer", {}), "buffer", BufferConfig),
        cli=_sanitize_section(raw.get("cli", {}), "cli", CLIConfig),
        tonemap=_load_tonemap_section(raw.get("tonemap", {})),
    )
    _validate_buffer(app.buffer)
    return app


def load_config(path: str) -> AppConfig:
    """Read *path* as UTF-8 TOML (an optional BOM is skipped) and validate it.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ConfigError: If the file is not UTF-8 or fails :func:`parse_config_text`.
    """

    with open(path, "rb") as handle:
        payload = handle.read()
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"{path} is not UTF-8 encoded: {exc.reason}") from exc
    return parse_config_text(text)


def default_config() -> AppConfig:
    return AppConfig(buffer=BufferConfig(), cli=CLIConfig(), tonemap=ToneMapConfig().resolved())
