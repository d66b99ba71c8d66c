"""Decode cross-check: confirm a rendered image still reads back as its payload."""

import time
from collections.abc import Callable
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image
from pyzbar.pyzbar import ZBarSymbol
from pyzbar.pyzbar import decode as pyzbar_decode

from quantumqr.export import flatten
from quantumqr.logging import audit, get_logger, trace

log = get_logger("verify")


@dataclass
class ScanResult:
    """Result of a single scan attempt."""
    success: bool
    decoded_data: str | None = None
    decode_time_ms: float = 0.0
    decoder: str = ""
    error: str | None = None


def _decode_pyzbar(image: Image.Image) -> str | None:
    results = pyzbar_decode(image, symbols=[ZBarSymbol.QRCODE])
    if not results:
        return None
    return results[0].data.decode("utf-8", errors="replace")


def _decode_opencv(image: Image.Image) -> str | None:
    gray = cv2.cvtColor(np.array(image), cv2.COLOR_RGB2GRAY)
    data, _, _ = cv2.QRCodeDetector().detectAndDecode(gray)
    return data or None


def _scan(decoder: str, decode: Callable[[Image.Image], str | None], image: Image.Image) -> ScanResult:
    # Decoders expect an opaque image: shape clips leave transparent corners.
    start = time.perf_counter()
    try:
        data = decode(flatten(image))
    except Exception as e:  # a crashing decoder is a failed scan, not a failed run
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.error", logger=log, decoder=decoder, error=str(e), time_ms=round(elapsed, 1))
        return ScanResult(success=False, decode_time_ms=elapsed, decoder=decoder, error=str(e))

    elapsed = (time.perf_counter() - start) * 1000
    if data is None:
        audit("scan.verified", logger=log, decoder=decoder, success=False, time_ms=round(elapsed, 1), error="No QR code detected")
        return ScanResult(success=False, decode_time_ms=elapsed, decoder=decoder, error="No QR code detected")

    audit("scan.verified", logger=log, decoder=decoder, success=True, time_ms=round(elapsed, 1), data=data[:80])
    return ScanResult(success=True, decoded_data=data, decode_time_ms=elapsed, decoder=decoder)


@trace
def scan_pyzbar(image: Image.Image) -> ScanResult:
    """Scan a QR code using pyzbar (wraps ZBar)."""
    return _scan("pyzbar/zbar", _decode_pyzbar, image)


@trace
def scan_opencv(image: Image.Image) -> ScanResult:
    """Scan a QR code using OpenCV's built-in QR detector."""
    return _scan("opencv", _decode_opencv, image)


@trace
def verify(image: Image.Image, expected_data: str | None = None) -> list[ScanResult]:
    """Run all available decoders on an image.

    Args:
        image: Rendered QR image (transparency is flattened onto white).
        expected_data: If provided, a decode that returns anything else
                       counts as a failure.

    Returns:
        List of ScanResults, one per decoder.
    """
    results = []
    for scanner in [scan_pyzbar, scan_opencv]:
        result = scanner(image)
        if result.success and expected_data is not None and result.decoded_data != expected_data:
            result.success = False
            result.error = f"Data mismatch: got '{result.decoded_data}', expected '{expected_data}'"
        results.append(result)
    return results
