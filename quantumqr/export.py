"""Export helpers: re-encode a rendered image for download or sharing."""

import base64
import io
import time

from PIL import Image

from quantumqr.errors import InvalidOptionsError
from quantumqr.logging import audit, get_logger, trace

log = get_logger("export")

FORMATS = ("png", "jpg", "svg")
MIME_TYPES = {"png": "image/png", "jpg": "image/jpeg"}


def flatten(image: Image.Image, background: tuple[int, int, int] = (255, 255, 255)) -> Image.Image:
    """Composite *image* onto an opaque background and drop the alpha channel."""
    rgba = image.convert("RGBA")
    canvas = Image.new("RGBA", rgba.size, background + (255,))
    canvas.alpha_composite(rgba)
    return canvas.convert("RGB")


def normalize_format(fmt: str) -> str:
    """Map a requested format to one we can write (svg falls back to png)."""
    fmt = fmt.lower().lstrip(".")
    if fmt == "jpeg":
        fmt = "jpg"
    if fmt not in FORMATS:
        raise InvalidOptionsError(f"unsupported export format {fmt!r}; choose from {FORMATS}", stage="export")
    if fmt == "svg":
        log.warning("SVG export is not available, writing PNG instead")
        return "png"
    return fmt


def to_png_bytes(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def to_jpeg_bytes(image: Image.Image, quality: int = 90) -> bytes:
    """JPEG has no alpha: transparent regions (e.g. outside a shape clip) become white."""
    buf = io.BytesIO()
    flatten(image).save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


@trace
def to_bytes(image: Image.Image, fmt: str = "png", quality: int = 90) -> bytes:
    fmt = normalize_format(fmt)
    data = to_png_bytes(image) if fmt == "png" else to_jpeg_bytes(image, quality=quality)
    audit("export.encoded", logger=log, format=fmt, bytes=len(data), image_px=f"{image.size[0]}x{image.size[1]}")
    return data


def to_data_url(image: Image.Image, fmt: str = "png", quality: int = 90) -> str:
    fmt = normalize_format(fmt)
    payload = base64.b64encode(to_bytes(image, fmt, quality)).decode("ascii")
    return f"data:{MIME_TYPES[fmt]};base64,{payload}"


def download_filename(fmt: str = "png", prefix: str = "qrcode") -> str:
    """``<prefix>-<epoch ms>.<ext>``"""
    return f"{prefix}-{int(time.time() * 1000)}.{normalize_format(fmt)}"
