"""Exception hierarchy for the tone mapping subsystem."""

from __future__ import annotations

from dataclasses import dataclass

from src.image_buffer.exceptions import ImageBufferError


class ToneMapError(ImageBufferError):
    """Base class for all tone mapping related failures."""


class VerificationError(ToneMapError):
    """Raised when verification metrics cannot be computed."""


@dataclass(slots=True)
class ToneMapConfigError(ToneMapError):
    """Raised when tone mapping configuration fails validation."""

    field: str
    problem: str

    def __str__(self) -> str:
        return f"{self.field}: {self.problem}"
