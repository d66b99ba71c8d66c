"""Image sources and the logo embedder."""

import base64
import binascii
import io
import urllib.parse
from pathlib import Path

from PIL import Image, ImageDraw

from quantumqr.errors import ImageLoadError, StageResult
from quantumqr.logging import audit, get_logger, trace
from quantumqr.options import ImageSource, LogoSpec, parse_color

log = get_logger("logo")


# ---------------------------------------------------------------------------
# Image loading
# ---------------------------------------------------------------------------

def _decode_data_url(url: str) -> bytes:
    header, sep, body = url.partition(",")
    if not sep:
        raise ValueError("data URL has no ',' separator")
    if header.endswith(";base64"):
        return base64.b64decode(body, validate=True)
    return urllib.parse.unquote_to_bytes(body)


def load_image(source: ImageSource, *, what: str = "image") -> Image.Image:
    """Decode *source* into a fully loaded PIL image.

    *source* may be a PIL image (returned as is), raw encoded bytes, a
    ``data:`` URL, or a filesystem path.

    Raises:
        ImageLoadError: the source could not be read or decoded.
    """
    if isinstance(source, Image.Image):
        return source

    if isinstance(source, (bytes, bytearray)):
        kind = "bytes"
    elif isinstance(source, str) and source.startswith("data:"):
        kind = "data URL"
    elif isinstance(source, (str, Path)):
        kind = "path"
    else:
        raise ImageLoadError(f"cannot load {what} from {type(source).__name__}")

    try:
        if kind == "bytes":
            img = Image.open(io.BytesIO(bytes(source)))
        elif kind == "data URL":
            img = Image.open(io.BytesIO(_decode_data_url(source)))
        else:
            img = Image.open(source)
        img.load()
    except (OSError, ValueError, binascii.Error, Image.DecompressionBombError) as e:
        raise ImageLoadError(f"could not decode {what} from {kind}: {e}") from e

    audit("image.loaded", logger=log, what=what, kind=kind, mode=img.mode, size=f"{img.size[0]}x{img.size[1]}")
    return img


# ---------------------------------------------------------------------------
# Logo embedding
# ---------------------------------------------------------------------------

def logo_box(size: tuple[int, int], scale: float = 0.2) -> tuple[int, int, int]:
    """Return (x, y, side) of the centred logo square for an image of *size*."""
    w, h = size
    side = int(scale * min(w, h))
    return (w - side) // 2, (h - side) // 2, side


@trace
def try_embed_logo(image: Image.Image, logo: LogoSpec | ImageSource) -> StageResult:
    """Centre *logo* on *image* over an opaque background patch.

    The logo spans ``scale`` (0.2) of the shorter side; the patch extends
    ``padding`` (5px) beyond it on every side. A logo that fails to decode
    leaves the image untouched and sets the result's warning.
    """
    spec = logo if isinstance(logo, LogoSpec) else LogoSpec(source=logo)
    background = parse_color(spec.background, field_name="logo background")[:3] + (255,)

    x, y, side = logo_box(image.size, spec.scale)
    try:
        if side < 1:
            raise ImageLoadError(f"image {image.size[0]}x{image.size[1]} is too small for a logo", stage="logo")
        logo_img = load_image(spec.source, what="logo")
    except ImageLoadError as e:
        audit("logo.degraded", logger=log, error=str(e))
        log.warning("Logo not embedded (%s), returning symbol unchanged", e)
        return StageResult(image, "logo", warning=f"logo not embedded: {e}", error=e)

    result = image.convert("RGBA")
    pad = spec.padding
    draw = ImageDraw.Draw(result)
    draw.rectangle([x - pad, y - pad, x + side + pad - 1, y + side + pad - 1], fill=background)

    logo_rgba = logo_img.convert("RGBA").resize((side, side), Image.LANCZOS)
    result.alpha_composite(logo_rgba, (x, y))

    audit("logo.embedded", logger=log,
          image_px=f"{image.size[0]}x{image.size[1]}",
          logo_px=f"{side}x{side}",
          patch_px=side + 2 * pad)
    return StageResult(result, "logo")


def embed_logo(image: Image.Image, logo: LogoSpec | ImageSource) -> Image.Image:
    """Centre *logo* on *image*; an undecodable logo returns *image* unchanged."""
    return try_embed_logo(image, logo).image
