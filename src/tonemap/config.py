"""Configuration helpers for the tone mapping subsystem."""

from __future__ import annotations

import hashlib
import math
from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping, MutableMapping

from .exceptions import ToneMapConfigError
from .operators import ToneMapping, string_to_tone_mapping, tone_mapping_name, tone_mapping_names

ALIAS_KEYS = {
    "tone_mapping": "operator",
    "func": "operator",
    "curve": "operator",
    "white_point": "uncharted_white_point",
    "exposure_bias": "uncharted_exposure_bias",
    "max_brightness": "gt_max_brightness",
    "contrast": "gt_contrast",
    "linear_start": "gt_linear_start",
    "linear_length": "gt_linear_length",
    "black_tightness": "gt_black_tightness",
    "pedestal": "gt_pedestal",
}


def _normalise_key(key: str) -> str:
    return key.strip().lower().replace("-", "_")


def _normalise_operator(name: Any) -> str:
    if isinstance(name, ToneMapping):
        return tone_mapping_name(name)
    resolved = string_to_tone_mapping(str(name or ""))
    if resolved is None:
        return _normalise_key(str(name or ""))
    return tone_mapping_name(resolved)


@dataclass(slots=True)
class ToneMapConfig:
    """Tone mapping parameters resolved from TOML/CLI inputs."""

    operator: str = "aces"
    gamma: float = 2.2
    exposure: float = 1.0
    uncharted_exposure_bias: float = 2.0
    uncharted_white_point: float = 11.2
    gt_max_brightness: float = 1.0
    gt_contrast: float = 1.0
    gt_linear_start: float = 0.22
    gt_linear_length: float = 0.4
    gt_black_tightness: float = 1.33
    gt_pedestal: float = 0.0

    def __post_init__(self) -> None:
        self.operator = _normalise_operator(self.operator)

    @property
    def tone_mapping(self) -> ToneMapping:
        resolved = string_to_tone_mapping(self.operator)
        if resolved is None:
            raise ToneMapConfigError("operator", f"must be one of: {list(tone_mapping_names())}")
        return resolved

    def resolved(self) -> ToneMapConfig:
        """Return a validated copy."""

        clone = replace(self)
        clone._validate()
        return clone

    def _validate(self) -> None:
        if string_to_tone_mapping(self.operator) is None:
            raise ToneMapConfigError("operator", f"must be one of: {list(tone_mapping_names())}")
        for name in (
            "gamma",
            "exposure",
            "uncharted_exposure_bias",
            "uncharted_white_point",
            "gt_max_brightness",
            "gt_contrast",
            "gt_linear_start",
            "gt_linear_length",
            "gt_black_tightness",
            "gt_pedestal",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ToneMapConfigError(name, "must be a finite number")
        if self.gamma <= 0:
            raise ToneMapConfigError("gamma", "must be greater than zero")
        if self.exposure < 0:
            raise ToneMapConfigError("exposure", "must be >= 0")
        if self.uncharted_exposure_bias <= 0:
            raise ToneMapConfigError("uncharted_exposure_bias", "must be greater than zero")
        if self.uncharted_white_point <= 0:
            raise ToneMapConfigError("uncharted_white_point", "must be greater than zero")
        if self.gt_contrast <= 0:
            raise ToneMapConfigError("gt_contrast", "must be greater than zero")
        if self.gt_linear_start <= 0:
            raise ToneMapConfigError("gt_linear_start", "must be greater than zero")
        if self.gt_linear_length < 0:
            raise ToneMapConfigError("gt_linear_length", "must be >= 0")
        if self.gt_black_tightness <= 0:
            raise ToneMapConfigError("gt_black_tightness", "must be greater than zero")
        if self.gt_max_brightness <= self.gt_linear_start:
            raise ToneMapConfigError("gt_max_brightness", "must be greater than gt_linear_start")
        shoulder_start = self.gt_linear_start + (self.gt_max_brightness - self.gt_linear_start) * self.gt_linear_length
        if shoulder_start >= self.gt_max_brightness:
            raise ToneMapConfigError("gt_linear_length", "linear section must end below gt_max_brightness")

    def fingerprint(self) -> str:
        """Return a short hash for log tracing."""

        payload = repr(tuple(self.as_dict().values())).encode("utf-8")
        return hashlib.sha1(payload).hexdigest()[:8]

    def merged(self, **overrides: Any) -> ToneMapConfig:
        clone = replace(self)
        for key, value in overrides.items():
            key_norm = _normalise_key(key)
            alias = ALIAS_KEYS.get(key_norm, key_norm)
            if alias not in self.__dataclass_fields__:
                raise ToneMapConfigError(alias, "unknown field in overrides")
            if alias == "operator":
                value = _normalise_operator(value)
            setattr(clone, alias, value)
        return clone

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> ToneMapConfig:
        prepared: MutableMapping[str, Any] = {}
        for raw_key, value in mapping.items():
            key_norm = _normalise_key(raw_key)
            alias = ALIAS_KEYS.get(key_norm, key_norm)
            if alias not in cls.__dataclass_fields__:
                raise ToneMapConfigError(alias, "unknown field in tonemap section")
            prepared[alias] = value
        return cls(**prepared)


DEFAULT_TONEMAP_CONFIG = ToneMapConfig().resolved()
