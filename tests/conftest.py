import io
import logging

import numpy as np
import pytest
from PIL import Image, ImageDraw

from quantumqr.generator import encode
from quantumqr.logging import ROOT_LOGGER
from quantumqr.options import EncodingOptions


def png_bytes(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def symbol() -> Image.Image:
    """Default 512px symbol for the example URL."""
    return encode("https://example.com", EncodingOptions())


@pytest.fixture
def logo_png() -> bytes:
    """Opaque solid red 40x40 logo."""
    return png_bytes(Image.new("RGBA", (40, 40), (255, 0, 0, 255)))


@pytest.fixture
def round_logo_png() -> bytes:
    """Red disc on a transparent background."""
    img = Image.new("RGBA", (64, 64), (0, 0, 0, 0))
    ImageDraw.Draw(img).ellipse([4, 4, 59, 59], fill=(200, 20, 20, 255))
    return png_bytes(img)


@pytest.fixture
def photo() -> Image.Image:
    """Opaque 300x200 noise photo (landscape, so cover-scaling crops width)."""
    rng = np.random.RandomState(7)
    arr = rng.randint(0, 256, size=(200, 300, 3), dtype=np.uint8)
    return Image.fromarray(arr)


@pytest.fixture(autouse=True)
def _reset_logging():
    """CLI runs attach handlers to the package logger; drop them between tests."""
    yield
    root = logging.getLogger(ROOT_LOGGER)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
