"""Upload validation: size and MIME type checks run before any processing."""

from dataclasses import dataclass

from config import settings

PDF_MIME = "application/pdf"

# MIME type -> processing category; the orchestrator dispatches on the category
MIME_CATEGORIES: dict[str, str] = {
    PDF_MIME: "pdf",
    "image/jpeg": "image",
    "image/png": "image",
    "image/heic": "image",
}

# Non-standard spellings browsers still send
MIME_ALIASES: dict[str, str] = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
}

UNSUPPORTED_TYPE_ERROR = "File type not supported. Please upload a PDF or image (JPG, PNG, HEIC)."


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


def normalize_mime(mime_type: str) -> str:
    """Lower-case, drop parameters, and resolve aliases."""
    base = (mime_type or "").split(";", 1)[0].strip().lower()
    return MIME_ALIASES.get(base, base)


def mime_category(mime_type: str) -> str | None:
    """Return "pdf", "image", or None for unsupported types."""
    return MIME_CATEGORIES.get(normalize_mime(mime_type))


def validate_file(mime_type: str, size: int, max_bytes: int | None = None) -> ValidationResult:
    """Check one file's declared type and byte size. Pure; no I/O."""
    limit = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_BYTES

    if size > limit:
        return ValidationResult(False, f"File size exceeds {_format_limit(limit)} limit")

    if size <= 0:
        return ValidationResult(False, "File is empty")

    if mime_category(mime_type) is None:
        return ValidationResult(False, UNSUPPORTED_TYPE_ERROR)

    return ValidationResult(True)


def _format_limit(limit: int) -> str:
    mb = limit / (1024 * 1024)
    if mb >= 1 and mb == int(mb):
        return f"{int(mb)}MB"
    if mb >= 1:
        return f"{mb:.1f}MB"
    return f"{limit} byte"
