"""Pipeline orchestrator: payload + RenderOptions -> one final image.

Two routes:
    encode -> blend_photo                       (when a BlendSpec is given)
    encode -> clip (non-square) -> embed_logo   (otherwise)

Validation, encoding and blend errors propagate. Shape and logo stages
degrade to their input and their warnings are collected on the result.
"""

import asyncio
from dataclasses import dataclass, field

from PIL import Image

from quantumqr.blend import blend_with_spec
from quantumqr.errors import EmptyPayloadError, StageResult
from quantumqr.generator import encode
from quantumqr.logging import audit, get_logger, trace
from quantumqr.logo import try_embed_logo
from quantumqr.options import RenderOptions, Shape
from quantumqr.shapes import try_clip

log = get_logger("pipeline")

PAYLOAD_TYPES = ("url", "text", "vcard", "wifi", "upi", "sms", "email", "barcode", "file", "picture")


@dataclass
class GenerationResult:
    """Final image plus what happened on the way."""

    image: Image.Image
    payload: str
    payload_type: str
    stages: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    scan_ok: bool | None = None
    scan_results: list = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


def _check_payload(payload: str) -> None:
    if not isinstance(payload, str) or not payload.strip():
        raise EmptyPayloadError("payload is empty; enter content to encode")


def _plan(options: RenderOptions) -> list[str]:
    """Stage names, in order, for *options*."""
    if options.blend is not None:
        if Shape.parse(options.shape) is not Shape.SQUARE or options.logo is not None:
            log.debug("Photo blend requested: shape and logo options are ignored")
        return ["encode", "blend"]
    stages = ["encode"]
    if Shape.parse(options.shape) is not Shape.SQUARE:
        stages.append("shape")
    if options.logo is not None:
        stages.append("logo")
    return stages


def _record(result: GenerationResult, stage: StageResult) -> Image.Image:
    if stage.degraded:
        result.warnings.append(stage.warning)
    return stage.image


def _finish(result: GenerationResult, options: RenderOptions) -> GenerationResult:
    if options.verify_scan:
        from quantumqr.verify import verify

        result.scan_results = verify(result.image, expected_data=result.payload)
        result.scan_ok = any(r.success for r in result.scan_results)

    audit("pipeline.generated", logger=log,
          data=result.payload[:80], type=result.payload_type,
          stages=">".join(result.stages),
          image_px=f"{result.image.size[0]}x{result.image.size[1]}",
          warnings=len(result.warnings), scan_ok=result.scan_ok)
    return result


@trace
def generate(payload: str, payload_type: str = "text", options: RenderOptions | None = None) -> GenerationResult:
    """Run the full pipeline synchronously."""
    _check_payload(payload)
    options = options or RenderOptions()
    stages = _plan(options)

    image = encode(payload, options.encoding)
    result = GenerationResult(image=image, payload=payload, payload_type=payload_type, stages=stages)

    if "blend" in stages:
        result.image = blend_with_spec(image, options.blend)
    if "shape" in stages:
        result.image = _record(result, try_clip(result.image, options.shape))
    if "logo" in stages:
        result.image = _record(result, try_embed_logo(result.image, options.logo))

    return _finish(result, options)


@trace
async def generate_async(payload: str, payload_type: str = "text", options: RenderOptions | None = None) -> GenerationResult:
    """Run the pipeline with each stage awaited in a worker thread.

    Stages still run strictly in order. Cancelling the awaiting task
    abandons the request; no stage touches shared state, so there is
    nothing to roll back.
    """
    _check_payload(payload)
    options = options or RenderOptions()
    stages = _plan(options)

    image = await asyncio.to_thread(encode, payload, options.encoding)
    result = GenerationResult(image=image, payload=payload, payload_type=payload_type, stages=stages)

    if "blend" in stages:
        result.image = await asyncio.to_thread(blend_with_spec, image, options.blend)
    if "shape" in stages:
        result.image = _record(result, await asyncio.to_thread(try_clip, result.image, options.shape))
    if "logo" in stages:
        result.image = _record(result, await asyncio.to_thread(try_embed_logo, result.image, options.logo))

    if options.verify_scan:
        return await asyncio.to_thread(_finish, result, options)
    return _finish(result, options)
