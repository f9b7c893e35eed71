"""Data-URI encoding for images sent to the extraction engine."""

import base64

from validation import normalize_mime


def encode_image(image_bytes: bytes, mime_type: str) -> str:
    """Return a self-describing ``data:<mime>;base64,<payload>`` token."""
    payload = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{normalize_mime(mime_type)};base64,{payload}"
