"""Shape clipper: restrict a rendered symbol to a silhouette.

Every silhouette is built as a centred ``ShapePath`` inscribed in the image
(radius = half the shorter side minus a fixed inset), rasterised into an
anti-aliased mask, and multiplied into the image's alpha channel. Pixels
outside the path become transparent.

Clipping is decorative, so it never raises: any failure hands back the
input image untouched together with a warning.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass

from PIL import Image, ImageChops, ImageDraw

from quantumqr.errors import StageResult
from quantumqr.logging import audit, get_logger, trace
from quantumqr.options import Shape

log = get_logger("shapes")

SHAPE_INSET_PX = 10
ROUNDED_CORNER_RATIO = 0.2
FALLBACK_CORNER_RATIO = 0.1
STAR_POINTS = 5
STAR_INNER_RATIO = 0.4

# Masks are drawn oversized and downsampled for smooth edges; cap the
# oversized canvas so a 2048px symbol doesn't allocate a 8192px mask.
SUPERSAMPLE = 4
_MAX_MASK_SIDE = 4096


@dataclass(frozen=True)
class ShapePath:
    """A closed outline in image pixel coordinates.

    kind is one of ``ellipse`` (uses *box*), ``rounded_rect`` (*box* +
    *corner_radius*) or ``polygon`` (*points*).
    """

    kind: str
    box: tuple[float, float, float, float] | None = None
    corner_radius: float = 0.0
    points: tuple[tuple[float, float], ...] = ()


# ---------------------------------------------------------------------------
# Bezier utilities
# ---------------------------------------------------------------------------

def _cubic_bezier(p0, p1, p2, p3, n=30):
    """Generate *n+1* points along a cubic Bezier curve."""
    pts = []
    for i in range(n + 1):
        t = i / n
        u = 1 - t
        x = u**3 * p0[0] + 3 * u**2 * t * p1[0] + 3 * u * t**2 * p2[0] + t**3 * p3[0]
        y = u**3 * p0[1] + 3 * u**2 * t * p1[1] + 3 * u * t**2 * p2[1] + t**3 * p3[1]
        pts.append((x, y))
    return pts


# Heart outline in a unit box ([-1, 1] on both axes, y pointing down),
# clockwise from the bottom tip.
_HEART_SEGMENTS = [
    ((0.0, 0.9), (-0.55, 0.5), (-1.0, 0.1), (-1.0, -0.35)),
    ((-1.0, -0.35), (-1.0, -0.85), (-0.25, -1.0), (0.0, -0.55)),
    ((0.0, -0.55), (0.25, -1.0), (1.0, -0.85), (1.0, -0.35)),
    ((1.0, -0.35), (1.0, 0.1), (0.55, 0.5), (0.0, 0.9)),
]


# ---------------------------------------------------------------------------
# Path builders, one per silhouette
# ---------------------------------------------------------------------------

def _box(cx: float, cy: float, r: float) -> tuple[float, float, float, float]:
    return (cx - r, cy - r, cx + r, cy + r)


def circle_path(cx: float, cy: float, r: float) -> ShapePath:
    return ShapePath("ellipse", box=_box(cx, cy, r))


def rounded_square_path(cx: float, cy: float, r: float, corner_ratio: float = ROUNDED_CORNER_RATIO) -> ShapePath:
    return ShapePath("rounded_rect", box=_box(cx, cy, r), corner_radius=corner_ratio * r)


def polygon_path(cx: float, cy: float, r: float, sides: int) -> ShapePath:
    """Regular N-gon, vertices every 2*pi/N starting at angle 0."""
    if sides < 3:
        raise ValueError(f"a polygon needs at least 3 sides, got {sides}")
    step = 2 * math.pi / sides
    points = tuple(
        (cx + r * math.cos(i * step), cy + r * math.sin(i * step))
        for i in range(sides)
    )
    return ShapePath("polygon", points=points)


def star_path(cx: float, cy: float, r: float, points: int = STAR_POINTS) -> ShapePath:
    """Star alternating outer radius *r* and inner radius 0.4*r; first tip up."""
    inner = STAR_INNER_RATIO * r
    step = math.pi / points
    vertices = []
    for i in range(2 * points):
        radius = r if i % 2 == 0 else inner
        angle = -math.pi / 2 + i * step
        vertices.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle)))
    return ShapePath("polygon", points=tuple(vertices))


def heart_path(cx: float, cy: float, r: float) -> ShapePath:
    outline = []
    for segment in _HEART_SEGMENTS:
        pts = _cubic_bezier(*segment, n=30)
        outline.extend(pts[:-1])  # drop last (= next segment's first)
    return ShapePath("polygon", points=tuple((cx + x * r, cy + y * r) for x, y in outline))


_PATH_BUILDERS: dict[Shape, Callable[[float, float, float], ShapePath]] = {
    Shape.CIRCLE: circle_path,
    Shape.ROUNDED_SQUARE: rounded_square_path,
    Shape.HEART: heart_path,
    Shape.STAR: star_path,
    Shape.DIAMOND: lambda cx, cy, r: polygon_path(cx, cy, r, 4),
    Shape.TRIANGLE: lambda cx, cy, r: polygon_path(cx, cy, r, 3),
    Shape.PENTAGON: lambda cx, cy, r: polygon_path(cx, cy, r, 5),
    Shape.HEXAGON: lambda cx, cy, r: polygon_path(cx, cy, r, 6),
    Shape.OCTAGON: lambda cx, cy, r: polygon_path(cx, cy, r, 8),
}

_unbuilt = set(Shape) - {Shape.SQUARE} - set(_PATH_BUILDERS)
if _unbuilt:
    raise RuntimeError(f"no path builder for shapes: {sorted(s.value for s in _unbuilt)}")


def build_path(shape: Shape | None, size: tuple[int, int], inset: int = SHAPE_INSET_PX) -> ShapePath:
    """Build the centred path for *shape* inside an image of *size*.

    None (an unrecognised shape) gets a rounded square with a 0.1*r corner.
    """
    w, h = size
    r = min(w, h) / 2 - inset
    if r <= 0:
        raise ValueError(f"image {w}x{h} is too small for a {inset}px inset")
    if shape is None:
        return rounded_square_path(w / 2, h / 2, r, corner_ratio=FALLBACK_CORNER_RATIO)
    return _PATH_BUILDERS[shape](w / 2, h / 2, r)


def rasterize_path(path: ShapePath, size: tuple[int, int]) -> Image.Image:
    """Render *path* as an anti-aliased 'L' mask (255 inside, 0 outside)."""
    w, h = size
    ss = max(1, min(SUPERSAMPLE, _MAX_MASK_SIDE // max(w, h)))

    mask = Image.new("L", (w * ss, h * ss), 0)
    draw = ImageDraw.Draw(mask)

    if path.kind == "ellipse":
        draw.ellipse([c * ss for c in path.box], fill=255)
    elif path.kind == "rounded_rect":
        draw.rounded_rectangle([c * ss for c in path.box], radius=round(path.corner_radius * ss), fill=255)
    elif path.kind == "polygon":
        draw.polygon([(x * ss, y * ss) for x, y in path.points], fill=255)
    else:
        raise ValueError(f"unknown path kind {path.kind!r}")

    if ss == 1:
        return mask
    return mask.resize((w, h), Image.LANCZOS)


# ---------------------------------------------------------------------------
# Clipping stage
# ---------------------------------------------------------------------------

@trace
def try_clip(image: Image.Image, shape: Shape | str | None) -> StageResult:
    """Clip *image* to *shape*, reporting failures instead of raising.

    ``square`` (or None) returns the input object itself. Unknown shape
    names fall back to a rounded square with a 0.1*r corner radius.
    """
    parsed = Shape.parse(shape)
    if parsed is Shape.SQUARE:
        return StageResult(image, "shape")

    try:
        if parsed is None:
            log.warning("Unknown shape %r, falling back to rounded-square", shape)
            audit("shape.fallback", logger=log, requested=str(shape)[:40])
        path = build_path(parsed, image.size)

        mask = rasterize_path(path, image.size)
        clipped = image.convert("RGBA")
        clipped.putalpha(ImageChops.multiply(clipped.getchannel("A"), mask))
    except Exception as e:  # clipping is cosmetic: keep the scannable symbol
        audit("shape.degraded", logger=log, shape=str(shape)[:40], error=str(e))
        log.warning("Shape clip failed (%s), returning unclipped symbol", e)
        return StageResult(image, "shape", warning=f"shape clip to {shape!r} failed: {e}", error=e)

    audit("shape.clipped", logger=log,
          shape=parsed.value if parsed else "rounded-square(fallback)",
          image_px=f"{clipped.size[0]}x{clipped.size[1]}")
    return StageResult(clipped, "shape")


def clip(image: Image.Image, shape: Shape | str | None) -> Image.Image:
    """Clip *image* to *shape*; on failure the input comes back unchanged."""
    return try_clip(image, shape).image
