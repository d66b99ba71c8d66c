"""Matrix encoder: payload + EncodingOptions -> width x width RGBA symbol image."""

from enum import Enum

import numpy as np
import qrcode
import qrcode.base
import qrcode.constants
import qrcode.exceptions
from PIL import Image

from quantumqr.errors import EncodingError, InvalidOptionsError
from quantumqr.logging import audit, get_logger, trace
from quantumqr.options import EncodingOptions

log = get_logger("generator")

MAX_VERSION = 40

# Byte-mode header: 4-bit mode indicator + 16-bit character count (versions 10-40)
_BYTE_MODE_HEADER_BITS = 4 + 16


class ECCLevel(Enum):
    L = qrcode.constants.ERROR_CORRECT_L  # 7%
    M = qrcode.constants.ERROR_CORRECT_M  # 15%
    Q = qrcode.constants.ERROR_CORRECT_Q  # 25%
    H = qrcode.constants.ERROR_CORRECT_H  # 30%


ECC_NAMES = {"L": ECCLevel.L, "M": ECCLevel.M, "Q": ECCLevel.Q, "H": ECCLevel.H}


def _ecc_level(ecc: str) -> ECCLevel:
    try:
        return ECC_NAMES[ecc.upper()]
    except (KeyError, AttributeError):
        raise InvalidOptionsError(f"unknown error correction level {ecc!r}") from None


# ---------------------------------------------------------------------------
# Capacity table (ISO/IEC 18004 RS block table, as shipped with qrcode)
# ---------------------------------------------------------------------------

def data_capacity_bits(version: int, ecc: str) -> int:
    """Number of data bits (excluding EC codewords) in a symbol version."""
    if not 1 <= version <= MAX_VERSION:
        raise InvalidOptionsError(f"version must be 1-{MAX_VERSION}, got {version}")
    blocks = qrcode.base.rs_blocks(version, _ecc_level(ecc).value)
    return 8 * sum(block.data_count for block in blocks)


def max_payload_bytes(ecc: str) -> int:
    """Largest byte-mode payload that fits a version 40 symbol at *ecc*."""
    return (data_capacity_bits(MAX_VERSION, ecc) - _BYTE_MODE_HEADER_BITS) // 8


# ---------------------------------------------------------------------------
# Module matrix
# ---------------------------------------------------------------------------

def _build_qr(payload: str, ecc: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=None,
        error_correction=_ecc_level(ecc).value,
        box_size=1,
        border=0,
    )
    qr.add_data(payload)
    try:
        qr.make(fit=True)
    # qrcode 8 rejects version 41 in its version setter (ValueError) before
    # reaching its own DataOverflowError check.
    except (qrcode.exceptions.DataOverflowError, ValueError) as e:
        size = len(payload.encode("utf-8"))
        raise EncodingError(
            f"payload of {size} bytes exceeds the capacity at EC level {ecc.upper()} "
            f"(max {max_payload_bytes(ecc)} bytes in byte mode)"
        ) from e
    return qr


@trace
def module_matrix(payload: str, ecc: str = "M") -> tuple[np.ndarray, int]:
    """Return the (bool module matrix, version) for *payload* without rendering.

    True marks a dark module. The matrix excludes the quiet zone.
    """
    qr = _build_qr(payload, ecc)
    modules = np.array([[bool(m) for m in row] for row in qr.modules], dtype=bool)
    return modules, qr.version


def symbol_version(payload: str, ecc: str = "M") -> int:
    """Smallest version that holds *payload* at *ecc*."""
    return _build_qr(payload, ecc).version


def minimum_width(module_count: int, margin: int) -> int:
    """Smallest pixel width that gives every module (and margin cell) one pixel."""
    return module_count + 2 * margin


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

@trace
def encode(payload: str, options: EncodingOptions | None = None) -> Image.Image:
    """Render *payload* as a QR symbol of exactly ``width x width`` pixels.

    Dark modules are painted ``color_dark``; light modules and the quiet
    zone ``color_light``. Pixel ``i`` maps to cell ``floor(i * n / width)``
    of the bordered grid, so module edges never drift by more than one
    pixel when *width* is not a multiple of the grid size.

    Raises:
        InvalidOptionsError: bad width/margin/colours, or *width* too small
            for the symbol the payload needs.
        EncodingError: payload exceeds the capacity for the EC level.
    """
    options = options or EncodingOptions()
    dark, light = options.validate()

    modules, version = module_matrix(payload, options.ecc)
    count = modules.shape[0]
    grid = np.pad(modules, options.margin, constant_values=False)
    n = grid.shape[0]

    width = options.width
    if width < minimum_width(count, options.margin):
        raise InvalidOptionsError(
            f"width {width}px is below the {n}px minimum for a version {version} symbol "
            f"({count} modules + {options.margin} margin each side)"
        )

    index = (np.arange(width) * n) // width
    pixels = grid[np.ix_(index, index)]

    rgba = np.empty((width, width, 4), dtype=np.uint8)
    rgba[...] = light
    rgba[pixels] = dark
    img = Image.fromarray(rgba)

    audit("qr.encoded", logger=log,
          data=payload[:80], version=version, modules=f"{count}x{count}",
          ecc=options.ecc, margin=options.margin, image_px=f"{width}x{width}")
    return img
