import io
import re

import pytest
from PIL import Image

from quantumqr.errors import InvalidOptionsError
from quantumqr.export import download_filename, normalize_format, to_bytes, to_data_url
from quantumqr.shapes import clip


def test_png_keeps_alpha(symbol):
    data = to_bytes(clip(symbol, "circle"), "png")
    assert data.startswith(b"\x89PNG\r\n\x1a\n")
    img = Image.open(io.BytesIO(data))
    assert img.mode == "RGBA"
    assert img.getpixel((0, 0))[3] == 0


def test_jpeg_flattens_onto_white(symbol):
    data = to_bytes(clip(symbol, "circle"), "jpg")
    img = Image.open(io.BytesIO(data))
    assert img.format == "JPEG"
    assert all(c > 245 for c in img.getpixel((2, 2)))


@pytest.mark.parametrize("fmt, expected", [("png", "png"), ("JPEG", "jpg"), (".jpg", "jpg"), ("svg", "png")])
def test_normalize_format(fmt, expected):
    assert normalize_format(fmt) == expected


def test_unknown_format():
    with pytest.raises(InvalidOptionsError) as exc:
        normalize_format("gif")
    assert exc.value.stage == "export"


def test_data_url(symbol):
    assert to_data_url(symbol).startswith("data:image/png;base64,iVBOR")
    assert to_data_url(symbol, "jpeg").startswith("data:image/jpeg;base64,/9j/")


def test_download_filename():
    assert re.fullmatch(r"qrcode-\d{13}\.png", download_filename())
    assert re.fullmatch(r"badge-\d+\.jpg", download_filename("jpeg", prefix="badge"))
