from __future__ import annotations

from image_buffer import (
    ConfigError,
    DanglingParentError,
    FormatMismatchError,
    ImageBufferError,
    InvalidArgumentError,
    OutOfRangeError,
    StaleViewError,
    ToneMapError,
)
from src.tonemap.exceptions import ToneMapConfigError, VerificationError


def test_runtime_exception_hierarchy() -> None:
    assert issubclass(ImageBufferError, RuntimeError)
    for error in (
        OutOfRangeError,
        FormatMismatchError,
        InvalidArgumentError,
        DanglingParentError,
        StaleViewError,
        ToneMapError,
    ):
        assert issubclass(error, ImageBufferError)
    assert issubclass(ToneMapConfigError, ToneMapError)
    assert issubclass(VerificationError, ToneMapError)


def test_builtin_compatible_bases() -> None:
    assert issubclass(OutOfRangeError, IndexError)
    assert issubclass(FormatMismatchError, ValueError)
    assert issubclass(InvalidArgumentError, ValueError)
    assert issubclass(ConfigError, ValueError)
    assert not issubclass(ConfigError, ImageBufferError)


def test_config_error_carries_field_and_problem() -> None:
    error = ToneMapConfigError("gamma", "must be greater than zero")
    assert error.field == "gamma"
    assert str(error) == "gamma: must be greater than zero"
