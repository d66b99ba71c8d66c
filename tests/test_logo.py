import base64
import logging

import numpy as np
import pytest
from PIL import Image

from quantumqr.errors import ImageLoadError, InvalidOptionsError
from quantumqr.logo import embed_logo, load_image, logo_box, try_embed_logo
from quantumqr.options import LogoSpec


def test_logo_box_is_centred():
    assert logo_box((512, 512)) == (205, 205, 102)
    assert logo_box((400, 200), 0.5) == (150, 50, 100)


def test_embed_touches_only_the_patch(symbol, logo_png):
    out = embed_logo(symbol, logo_png)
    before = np.asarray(symbol.convert("RGBA"))
    after = np.asarray(out)

    x, y, side = logo_box(symbol.size)
    lo, hi = x - 5, x + side + 5  # patch is [lo, hi)

    outside = np.ones(after.shape[:2], dtype=bool)
    outside[lo:hi, lo:hi] = False
    assert np.array_equal(after[outside], before[outside])
    assert not np.array_equal(after[lo:hi, lo:hi], before[lo:hi, lo:hi])

    # padding ring is the white background, the logo itself is red
    assert tuple(after[lo + 1, lo + 1]) == (255, 255, 255, 255)
    assert tuple(after[256, 256]) == (255, 0, 0, 255)


def test_transparent_logo_shows_patch_background(symbol, round_logo_png):
    out = embed_logo(symbol, LogoSpec(source=round_logo_png, background="#00FF00"))
    x, y, side = logo_box(symbol.size)
    # corner of the logo square is transparent in the logo: patch colour shows
    assert out.getpixel((x + 1, y + 1)) == (0, 255, 0, 255)


def test_input_not_mutated(symbol, logo_png):
    before = symbol.tobytes()
    embed_logo(symbol, logo_png)
    assert symbol.tobytes() == before


def test_junk_logo_degrades(symbol):
    result = try_embed_logo(symbol, b"definitely not a png")
    assert result.degraded
    assert result.image is symbol
    assert "logo not embedded" in result.warning
    with pytest.raises(ImageLoadError):
        result.unwrap_or_raise()


def test_missing_path_degrades(symbol, tmp_path):
    result = try_embed_logo(symbol, tmp_path / "missing.png")
    assert result.degraded
    assert result.image is symbol


def test_data_url_logo(symbol, logo_png):
    url = "data:image/png;base64," + base64.b64encode(logo_png).decode("ascii")
    result = try_embed_logo(symbol, url)
    assert not result.degraded
    assert result.image.getpixel((256, 256)) == (255, 0, 0, 255)


def test_logo_from_path(symbol, logo_png, tmp_path):
    path = tmp_path / "logo.png"
    path.write_bytes(logo_png)
    assert try_embed_logo(symbol, str(path)).unwrap_or_raise().getpixel((256, 256)) == (255, 0, 0, 255)


def test_bad_background_raises(symbol, logo_png):
    with pytest.raises(InvalidOptionsError):
        try_embed_logo(symbol, LogoSpec(source=logo_png, background="not-a-colour"))


def test_load_image_rejects_unknown_source():
    with pytest.raises(ImageLoadError, match="int"):
        load_image(42)


def test_load_image_passes_pil_through():
    img = Image.new("RGB", (3, 3))
    assert load_image(img) is img


def test_junk_logo_logs_a_warning_not_an_error(symbol, caplog):
    caplog.set_level(logging.DEBUG, logger="quantumqr")
    try_embed_logo(symbol, b"definitely not a png")
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert any(r.levelno == logging.WARNING and "Logo not embedded" in r.getMessage() for r in caplog.records)
