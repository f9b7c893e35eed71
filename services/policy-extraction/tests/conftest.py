"""Shared test fixtures for policy extraction tests."""

import json
import shutil
import sys
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Settings

PDFTOPPM = shutil.which("pdftoppm")
needs_pdftoppm = pytest.mark.skipif(PDFTOPPM is None, reason="pdftoppm (poppler-utils) not installed")


def build_pdf(page_sizes: list[tuple[int, int]]) -> bytes:
    """Build a minimal valid PDF with one page per (width, height) in points.

    Page widths differ per page, so the rendered image width identifies the
    source page.
    """
    n = len(page_sizes)
    kids = " ".join(f"{3 + i} 0 R" for i in range(n))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {n} >>".encode(),
    ]
    for i, (w, h) in enumerate(page_sizes):
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {w} {h}] /Contents {3 + n + i} 0 R >>".encode()
        )
    for i in range(n):
        stream = f"0 0 0 rg 10 10 {10 * (i + 1)} 10 re f".encode()
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, obj in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + obj + b"\nendobj\n"

    xref = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref}\n%%EOF\n".encode()
    return bytes(out)


def make_settings(**overrides) -> Settings:
    """Settings with a dummy API key and fast retries, isolated from the environment."""
    values = {
        "OPENAI_API_KEY": "test-key",
        "EXTRACTION_RETRY_DELAY": 0.01,
        "EXTRACTION_RETRY_BACKOFF": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Generate a small JPEG resembling a scanned declaration page."""
    import cv2

    img = np.zeros((400, 300, 3), dtype=np.uint8)
    img[:] = (245, 245, 245)

    # Dark bars standing in for table rows
    for y in range(40, 360, 40):
        cv2.rectangle(img, (20, y), (280, y + 12), (30, 30, 30), -1)

    _, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, 90])
    return buf.tobytes()


@pytest.fixture
def large_png_bytes() -> bytes:
    """Generate a PNG larger than the default 2048px long edge."""
    import cv2

    img = np.zeros((3000, 2400, 3), dtype=np.uint8)
    img[:] = (200, 200, 200)
    _, buf = cv2.imencode(".png", img)
    return buf.tobytes()


@pytest.fixture
def invalid_bytes() -> bytes:
    """Non-image bytes for testing graceful degradation."""
    return b"this is not an image file at all"


@pytest.fixture
def three_page_pdf() -> bytes:
    return build_pdf([(100, 400), (200, 400), (300, 400)])


@pytest.fixture
def full_reply() -> str:
    """Engine reply with every schema field populated."""
    return json.dumps({
        "carrier": {"value": "Allstate", "confidence": 0.95},
        "effectiveDate": {"value": "2026-01-01", "confidence": 0.9},
        "expirationDate": {"value": "2027-01-01", "confidence": 0.9},
        "premium": {"value": 1840, "confidence": 0.9},
        "dwelling": {"value": 378380, "confidence": 0.95},
        "otherStructures": {"value": 72000, "confidence": 0.9},
        "personalProperty": {"value": 138000, "confidence": 0.9},
        "lossOfUse": {"value": 50000, "confidence": 0.85},
        "liability": {"value": 300000, "confidence": 0.8},
        "medPay": {"value": 5000, "confidence": 0.85},
        "waterBackup": {"value": 10000, "confidence": 0.75},
        "earthquake": {"value": 25000, "confidence": 0.6},
        "moldPropertyDamage": {"value": 5000, "confidence": 0.6},
        "moldLiability": {"value": 50000, "confidence": 0.6},
        "deductible": {"value": 1000, "confidence": 0.95},
    })


@pytest.fixture
def partial_reply() -> str:
    """Engine reply with 3 of 15 fields populated."""
    return json.dumps({
        "carrier": {"value": "State Farm", "confidence": 0.9},
        "dwelling": {"value": 250000, "confidence": 0.8},
        "deductible": {"value": 2500, "confidence": 0.7},
        "liability": {"value": None, "confidence": 0.0},
    })


@pytest.fixture
def empty_reply() -> str:
    """Valid JSON with no populated fields."""
    return json.dumps({
        "carrier": {"value": None, "confidence": 0.0},
        "dwelling": {"value": None, "confidence": 0.0},
    })


@pytest.fixture
def fenced_reply_with_trailing_comma() -> str:
    """Markdown-fenced reply with trailing commas, as models sometimes produce."""
    return (
        "Here are the extracted fields:\n"
        "```json\n"
        "{\n"
        '  "carrier": {"value": "Allstate", "confidence": 0.95},\n'
        '  "dwelling": {"value": 378380, "confidence": 0.95,},\n'
        '  "notes": ["EXCLUDED: Earthquake",],\n'
        "}\n"
        "```\n"
    )
