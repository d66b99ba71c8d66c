"""Render options: encoding parameters, shape, logo and photo-blend specs."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from PIL import Image, ImageColor

from quantumqr.errors import InvalidOptionsError
from quantumqr.logging import get_logger

log = get_logger("options")

ECC_LEVELS = ("L", "M", "Q", "H")

MAX_WIDTH = 2048
MIN_CONTRAST_RATIO = 4.5

# Anything load_image() understands: raw bytes, a path, a data: URL, or a PIL image.
ImageSource = bytes | bytearray | str | Path | Image.Image


def parse_color(value: str | tuple, *, field_name: str = "color") -> tuple[int, int, int, int]:
    """Parse a colour spec into an RGBA tuple.

    Accepts anything ``PIL.ImageColor.getrgb`` does (``#fff``, ``#RRGGBBAA``,
    ``rgb(...)``, names) plus 3- or 4-tuples of ints.
    """
    if isinstance(value, tuple):
        if len(value) not in (3, 4) or not all(isinstance(c, int) and 0 <= c <= 255 for c in value):
            raise InvalidOptionsError(f"{field_name}: invalid colour tuple {value!r}")
        return tuple(value) + (255,) * (4 - len(value))
    if not isinstance(value, str):
        raise InvalidOptionsError(f"{field_name}: expected a colour string, got {type(value).__name__}")
    try:
        rgb = ImageColor.getrgb(value)
    except ValueError as e:
        raise InvalidOptionsError(f"{field_name}: unrecognised colour {value!r}") from e
    return rgb + (255,) * (4 - len(rgb))


# ---------------------------------------------------------------------------
# WCAG contrast ratio
# ---------------------------------------------------------------------------

def _linearize(channel: int) -> float:
    """Convert sRGB channel (0-255) to linear light value."""
    c = channel / 255.0
    return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4


def _luminance(rgb: tuple[int, ...]) -> float:
    """Relative luminance per WCAG 2.0."""
    r, g, b = [_linearize(ch) for ch in rgb[:3]]
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(fg: tuple[int, ...], bg: tuple[int, ...]) -> float:
    """WCAG contrast ratio between two colours (1.0 - 21.0)."""
    l1 = _luminance(fg)
    l2 = _luminance(bg)
    if l1 < l2:
        l1, l2 = l2, l1
    return (l1 + 0.05) / (l2 + 0.05)


# ---------------------------------------------------------------------------
# Option dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EncodingOptions:
    """Parameters for the matrix encoder.

    ``margin`` is in modules, ``width`` in pixels. The rendered image is
    always ``width x width``.
    """

    error_correction: str = "M"
    margin: int = 4
    color_dark: str | tuple = "#000000"
    color_light: str | tuple = "#FFFFFF"
    width: int = 512

    def validate(self) -> tuple[tuple[int, ...], tuple[int, ...]]:
        """Check every field and return the parsed (dark, light) RGBA colours."""
        if not isinstance(self.error_correction, str) or self.error_correction.upper() not in ECC_LEVELS:
            raise InvalidOptionsError(
                f"error_correction must be one of {'/'.join(ECC_LEVELS)}, got {self.error_correction!r}"
            )
        if isinstance(self.width, bool) or not isinstance(self.width, int) or self.width <= 0:
            raise InvalidOptionsError(f"width must be a positive integer, got {self.width!r}")
        if self.width > MAX_WIDTH:
            raise InvalidOptionsError(f"width {self.width} exceeds the maximum of {MAX_WIDTH}px")
        if isinstance(self.margin, bool) or not isinstance(self.margin, int) or self.margin < 0:
            raise InvalidOptionsError(f"margin must be a non-negative integer, got {self.margin!r}")

        dark = parse_color(self.color_dark, field_name="color_dark")
        light = parse_color(self.color_light, field_name="color_light")

        ratio = contrast_ratio(dark, light)
        if ratio < MIN_CONTRAST_RATIO:
            log.warning("Contrast ratio %.1f:1 is below %.1f:1, scannability at risk", ratio, MIN_CONTRAST_RATIO)
        return dark, light

    @property
    def ecc(self) -> str:
        return self.error_correction.upper()


class Shape(str, Enum):
    """Silhouettes the shape clipper knows how to build."""

    SQUARE = "square"
    CIRCLE = "circle"
    ROUNDED_SQUARE = "rounded-square"
    HEART = "heart"
    STAR = "star"
    DIAMOND = "diamond"
    TRIANGLE = "triangle"
    PENTAGON = "pentagon"
    HEXAGON = "hexagon"
    OCTAGON = "octagon"

    @classmethod
    def parse(cls, value: "str | Shape | None") -> "Shape | None":
        """Return the matching shape, or None for unknown values."""
        if value is None:
            return cls.SQUARE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace("_", "-"))
        except ValueError:
            return None


class BlendMode(str, Enum):
    MULTIPLY = "multiply"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class LogoSpec:
    """A logo to centre on the symbol over an opaque background patch."""

    source: ImageSource
    background: str | tuple = "#FFFFFF"
    scale: float = 0.2
    padding: int = 5


@dataclass(frozen=True)
class BlendSpec:
    """A photo to merge with the module pattern."""

    source: ImageSource
    opacity: float = 0.7
    mode: BlendMode | str = BlendMode.MULTIPLY


@dataclass(frozen=True)
class RenderOptions:
    """Everything the pipeline needs besides the payload."""

    encoding: EncodingOptions = field(default_factory=EncodingOptions)
    shape: Shape | str = Shape.SQUARE
    logo: LogoSpec | None = None
    blend: BlendSpec | None = None
    verify_scan: bool = False
