"""Size normalization for uploaded raster images.

Phone photos of declaration pages are often far larger than the engine
needs. Images whose long edge exceeds the target are downscaled and
re-encoded in their original format; everything else passes through
untouched. Each step degrades gracefully: if OpenCV cannot decode the image
(HEIC, corrupt data) the original bytes are returned.
"""

import logging

import cv2
import numpy as np

from config import settings

logger = logging.getLogger(__name__)

# Re-encode parameters per output MIME type
_ENCODERS: dict[str, tuple[str, list[int]]] = {
    "image/jpeg": (".jpg", [cv2.IMWRITE_JPEG_QUALITY, 92]),
    "image/png": (".png", [cv2.IMWRITE_PNG_COMPRESSION, 6]),
}


def normalize_image(image_bytes: bytes, mime_type: str, long_edge: int | None = None) -> bytes:
    """Downscale so the long edge is at most ``long_edge`` pixels.

    Never upscales. Returns the original bytes when no resize is needed or
    when the image cannot be decoded or re-encoded.
    """
    target = long_edge if long_edge is not None else settings.RASTER_LONG_EDGE

    if mime_type not in _ENCODERS:
        return image_bytes

    img = _decode(image_bytes)
    if img is None:
        logger.warning("preprocessing: could not decode %s image, sending original", mime_type)
        return image_bytes

    h, w = img.shape[:2]
    if max(h, w) <= target:
        return image_bytes

    resized = _resize(img, target)
    encoded = _encode(resized, mime_type, fallback=image_bytes)
    logger.info(
        "preprocessing: downscaled %dx%d -> %dx%d (%d -> %d bytes)",
        w, h, resized.shape[1], resized.shape[0], len(image_bytes), len(encoded),
    )
    return encoded


def _decode(image_bytes: bytes) -> np.ndarray | None:
    """Decode raw bytes into an OpenCV BGR array."""
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    return cv2.imdecode(arr, cv2.IMREAD_COLOR)


def _resize(img: np.ndarray, long_edge: int) -> np.ndarray:
    """Scale proportionally so the longer side equals ``long_edge``."""
    h, w = img.shape[:2]
    scale = long_edge / max(h, w)
    size = (max(1, round(w * scale)), max(1, round(h * scale)))
    return cv2.resize(img, size, interpolation=cv2.INTER_AREA)


def _encode(img: np.ndarray, mime_type: str, fallback: bytes) -> bytes:
    """Encode in the original format so the declared MIME type stays correct."""
    ext, params = _ENCODERS[mime_type]
    try:
        success, buf = cv2.imencode(ext, img, params)
        if success:
            return buf.tobytes()
    except cv2.error as e:
        logger.warning("preprocessing: %s encode failed: %s", ext, e)

    return fallback
