import numpy as np
import pytest
from PIL import Image

from quantumqr.blend import blend_photo, blend_with_spec, cover_scale, dark_module_mask
from quantumqr.errors import BlendError, InvalidOptionsError
from quantumqr.options import BlendMode, BlendSpec


def rgb(img: Image.Image) -> np.ndarray:
    return np.asarray(img.convert("RGBA"))[..., :3].astype(int)


def test_output_matches_symbol_and_is_opaque(symbol, photo):
    out = blend_photo(symbol, photo)
    assert out.size == symbol.size
    assert out.mode == "RGBA"
    assert np.all(np.asarray(out.getchannel("A")) == 255)


def test_full_opacity_blacks_out_dark_modules(symbol, photo):
    out = rgb(blend_photo(symbol, photo, opacity=1.0))
    dark = dark_module_mask(symbol)
    assert dark.any()
    assert np.all(out[dark] == 0)


def test_zero_opacity_is_the_cover_scaled_photo(symbol, photo):
    out = rgb(blend_photo(symbol, photo, opacity=0.0))
    assert np.array_equal(out, rgb(cover_scale(photo, symbol.size)))


def test_multiply_leaves_light_modules_alone(symbol, photo):
    out = rgb(blend_photo(symbol, photo, opacity=0.7))
    base = rgb(cover_scale(photo, symbol.size))
    dark = dark_module_mask(symbol)
    assert np.array_equal(out[~dark], base[~dark])
    assert np.all(np.abs(out[dark] - base[dark] * 0.3) <= 1)


def test_advanced_lifts_light_modules(symbol, photo):
    out = rgb(blend_photo(symbol, photo, opacity=0.7, mode="advanced"))
    base = rgb(cover_scale(photo, symbol.size))
    light = ~dark_module_mask(symbol)
    assert np.all(out[light] >= base[light])
    assert np.any(out[light] > base[light])


def test_cover_scale_crops_centrally():
    strip = Image.new("RGB", (300, 100))
    strip.paste((255, 0, 0), (0, 0, 100, 100))
    strip.paste((0, 255, 0), (100, 0, 200, 100))
    strip.paste((0, 0, 255), (200, 0, 300, 100))
    out = cover_scale(strip, (100, 100))
    assert out.size == (100, 100)
    assert out.getpixel((50, 50)) == (0, 255, 0, 255)


@pytest.mark.parametrize("opacity", [-0.1, 1.5, "0.5", True])
def test_bad_opacity(symbol, photo, opacity):
    with pytest.raises(InvalidOptionsError):
        blend_photo(symbol, photo, opacity=opacity)


def test_bad_mode(symbol, photo):
    with pytest.raises(InvalidOptionsError) as exc:
        blend_photo(symbol, photo, mode="screen")
    assert exc.value.stage == "blend"


def test_undecodable_photo(symbol):
    with pytest.raises(BlendError):
        blend_photo(symbol, b"not an image")


def test_blend_with_spec(symbol, photo):
    spec = BlendSpec(source=photo, opacity=1.0, mode=BlendMode.MULTIPLY)
    out = rgb(blend_with_spec(symbol, spec))
    assert np.all(out[dark_module_mask(symbol)] == 0)


def test_zero_opacity_keeps_photo_alpha(symbol):
    rng = np.random.RandomState(3)
    arr = rng.randint(0, 256, size=(120, 160, 4), dtype=np.uint8)
    translucent = Image.fromarray(arr)
    out = np.asarray(blend_photo(symbol, translucent, opacity=0.0))
    assert np.array_equal(out, np.asarray(cover_scale(translucent, symbol.size)))
