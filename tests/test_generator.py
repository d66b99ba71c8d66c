import numpy as np
import pytest

from quantumqr.errors import EncodingError, InvalidOptionsError
from quantumqr.generator import (
    data_capacity_bits,
    encode,
    max_payload_bytes,
    minimum_width,
    module_matrix,
    symbol_version,
)
from quantumqr.options import EncodingOptions

URL = "https://example.com"


@pytest.mark.parametrize("ecc", ["L", "M", "Q", "H"])
@pytest.mark.parametrize("width", [100, 257, 512, 1000])
def test_encode_is_exactly_width_square(ecc, width):
    img = encode(URL, EncodingOptions(error_correction=ecc, width=width))
    assert img.size == (width, width)
    assert img.mode == "RGBA"


def test_encode_matches_module_matrix():
    modules, _ = module_matrix("quantum", "M")
    n = modules.shape[0] + 8
    img = encode("quantum", EncodingOptions(margin=4, width=n * 4))

    # Sample the centre of every 4x4 cell.
    dark = np.asarray(img)[2::4, 2::4, 0] < 128
    assert np.array_equal(dark, np.pad(modules, 4, constant_values=False))


def test_encode_paints_dark_and_light_colours():
    modules, _ = module_matrix("hi", "M")
    n = modules.shape[0] + 8
    opts = EncodingOptions(color_dark="#112233", color_light="#ffeedd", width=n * 10)
    arr = np.asarray(encode("hi", opts))

    assert tuple(arr[0, 0]) == (0xFF, 0xEE, 0xDD, 255)      # quiet zone
    assert tuple(arr[45, 45]) == (0x11, 0x22, 0x33, 255)    # finder pattern corner
    colours = {tuple(p) for p in arr.reshape(-1, 4)}
    assert colours == {(0xFF, 0xEE, 0xDD, 255), (0x11, 0x22, 0x33, 255)}


def test_encode_zero_margin_starts_with_finder():
    arr = np.asarray(encode(URL, EncodingOptions(margin=0, width=250)))
    assert arr[0, 0, 0] == 0


def test_encode_is_deterministic():
    a = encode(URL, EncodingOptions(width=300))
    b = encode(URL, EncodingOptions(width=300))
    assert a.tobytes() == b.tobytes()


def test_capacity_table():
    assert data_capacity_bits(1, "L") == 19 * 8
    assert data_capacity_bits(1, "H") == 9 * 8
    assert {ecc: max_payload_bytes(ecc) for ecc in "LMQH"} == {"L": 2953, "M": 2331, "Q": 1663, "H": 1273}


def test_payload_at_capacity_encodes_and_one_more_byte_fails():
    limit = max_payload_bytes("L")
    img = encode("a" * limit, EncodingOptions(error_correction="L", width=400))
    assert img.size == (400, 400)
    assert symbol_version("a" * limit, "L") == 40

    with pytest.raises(EncodingError, match="exceeds the capacity"):
        encode("a" * (limit + 1), EncodingOptions(error_correction="L", width=400))


def test_higher_ecc_needs_larger_version():
    assert symbol_version(URL, "H") >= symbol_version(URL, "L")


@pytest.mark.parametrize("kwargs", [
    {"width": 0},
    {"width": -10},
    {"width": 5000},
    {"width": 12.5},
    {"margin": -1},
    {"color_dark": "not-a-colour"},
    {"color_light": (300, 0, 0)},
    {"error_correction": "X"},
])
def test_invalid_options(kwargs):
    with pytest.raises(InvalidOptionsError):
        encode(URL, EncodingOptions(**kwargs))


def test_width_below_symbol_minimum_is_rejected():
    modules, _ = module_matrix(URL, "M")
    too_small = minimum_width(modules.shape[0], 4) - 1
    with pytest.raises(InvalidOptionsError, match="minimum"):
        encode(URL, EncodingOptions(width=too_small))


def test_errors_name_their_stage():
    with pytest.raises(EncodingError) as exc:
        encode("x" * 5000, EncodingOptions(error_correction="H"))
    assert exc.value.stage == "encode"
    assert str(exc.value).startswith("[encode]")
    assert isinstance(exc.value, ValueError)


def test_overflow_in_any_mode_is_an_encoding_error():
    # alphanumeric mode: 4296 chars is the version 40-L limit
    with pytest.raises(EncodingError) as exc:
        encode("Z" * 5000, EncodingOptions(error_correction="L"))
    assert type(exc.value) is EncodingError
    assert exc.value.__cause__ is not None
