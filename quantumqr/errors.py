"""Error types raised by the render pipeline.

Every error carries the pipeline ``stage`` it came from so callers can tell
the user which step to fix.
"""

from dataclasses import dataclass

from PIL import Image


class QuantumQRError(Exception):
    """Base class for all pipeline errors."""

    stage = "pipeline"

    def __init__(self, message: str, *, stage: str | None = None):
        if stage is not None:
            self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class InvalidOptionsError(QuantumQRError, ValueError):
    """Malformed dimensions, margin, colours, or other option values."""

    stage = "options"


class EncodingError(QuantumQRError, ValueError):
    """Payload does not fit any symbol version at the requested EC level."""

    stage = "encode"


class EmptyPayloadError(QuantumQRError, ValueError):
    stage = "pipeline"


class BlendError(QuantumQRError):
    """Photo or symbol image could not be decoded for blending."""

    stage = "blend"


class ImageLoadError(QuantumQRError):
    """Generic image decode failure (logo, shape source, etc.)."""

    stage = "image"


@dataclass
class StageResult:
    """Output of a cosmetic stage that degrades instead of raising.

    ``warning`` is None on success. When set, ``image`` is the unmodified
    input and ``error`` holds the exception that caused the fallback.
    """

    image: Image.Image
    stage: str
    warning: str | None = None
    error: Exception | None = None

    @property
    def degraded(self) -> bool:
        return self.warning is not None

    def unwrap_or_raise(self):
        """Return the image, or raise ImageLoadError if the stage fell back."""
        if self.degraded:
            raise ImageLoadError(self.warning, stage=self.stage) from self.error
        return self.image

