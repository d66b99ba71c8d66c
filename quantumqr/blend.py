"""Photo blender: merge a photograph with the symbol's module pattern.

Symbol pixels whose red channel is below 128 count as dark modules. The
photo is cover-scaled onto the symbol's canvas and its RGB channels are
multiplied by ``1 - opacity`` wherever the symbol is dark, so the result
reads as the photo while keeping a luminance step at every module edge.

There is no contrast floor: high-key photos with low opacity may not
decode. ``verify`` can report that but nothing here corrects it.
"""

import numpy as np
from PIL import Image, ImageOps

from quantumqr.errors import BlendError, ImageLoadError, InvalidOptionsError
from quantumqr.logging import audit, get_logger, trace
from quantumqr.logo import load_image
from quantumqr.options import BlendMode, BlendSpec, ImageSource

log = get_logger("blend")

DARK_THRESHOLD = 128
# Fraction of the remaining headroom light pixels gain per unit opacity in advanced mode
ADVANCED_LIFT = 0.5


def dark_module_mask(symbol: Image.Image) -> np.ndarray:
    """Bool array (h, w): True where the symbol pixel's red channel < 128."""
    red = np.asarray(symbol.convert("RGB"))[..., 0]
    return red < DARK_THRESHOLD


def cover_scale(photo: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Scale *photo* to fill *size*, preserving aspect and cropping the overflow centrally."""
    return ImageOps.fit(photo.convert("RGBA"), size, method=Image.LANCZOS, centering=(0.5, 0.5))


def _parse_mode(mode: BlendMode | str) -> BlendMode:
    try:
        return BlendMode(mode)
    except ValueError:
        raise InvalidOptionsError(
            f"blend mode must be one of {[m.value for m in BlendMode]}, got {mode!r}", stage="blend",
        ) from None


def _load(source: ImageSource, what: str) -> Image.Image:
    try:
        return load_image(source, what=what)
    except ImageLoadError as e:
        raise BlendError(str(e)) from e


@trace
def blend_photo(
    symbol: Image.Image | ImageSource,
    photo: ImageSource,
    opacity: float = 0.7,
    mode: BlendMode | str = BlendMode.MULTIPLY,
) -> Image.Image:
    """Darken *photo* where *symbol* has dark modules.

    Args:
        symbol: Rendered QR symbol (defines the output size).
        photo: The user photograph.
        opacity: Darkening strength in [0, 1]. 0 leaves the photo
                 untouched, 1 drives dark-module pixels to black.
        mode: ``multiply`` darkens dark-module pixels only. ``advanced``
              also lifts light-module pixels toward white by
              ``opacity * 0.5`` of their headroom.

    Returns:
        RGBA image the size of *symbol*. Alpha is the cover-scaled
        photo's alpha, so an opaque photo gives an opaque result.

    Raises:
        InvalidOptionsError: opacity out of range or unknown mode.
        BlendError: either image could not be decoded.
    """
    if isinstance(opacity, bool) or not isinstance(opacity, (int, float)) or not 0.0 <= opacity <= 1.0:
        raise InvalidOptionsError(f"opacity must be within [0, 1], got {opacity!r}", stage="blend")
    blend_mode = _parse_mode(mode)

    symbol_img = _load(symbol, "symbol")
    photo_img = _load(photo, "photo")

    dark = dark_module_mask(symbol_img)
    canvas = cover_scale(photo_img, symbol_img.size)

    arr = np.asarray(canvas, dtype=np.float32).copy()
    rgb = arr[..., :3]
    rgb[dark] *= 1.0 - opacity
    if blend_mode is BlendMode.ADVANCED:
        light = ~dark
        rgb[light] += (255.0 - rgb[light]) * (opacity * ADVANCED_LIFT)

    result = Image.fromarray(np.clip(np.rint(arr), 0, 255).astype(np.uint8))

    audit("photo.blended", logger=log,
          mode=blend_mode.value, opacity=opacity,
          image_px=f"{result.size[0]}x{result.size[1]}",
          photo_px=f"{photo_img.size[0]}x{photo_img.size[1]}",
          dark_fraction=round(float(dark.mean()), 3))
    return result


def blend_with_spec(symbol: Image.Image, spec: BlendSpec) -> Image.Image:
    return blend_photo(symbol, spec.source, opacity=spec.opacity, mode=spec.mode)
