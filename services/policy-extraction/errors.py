"""Failure taxonomy for the extraction pipeline.

Every error carries a machine-readable ``kind`` and a short user-facing
``summary``. The orchestrator converts them into a failed envelope; no raw
exception crosses the HTTP boundary.
"""


class ExtractionError(Exception):
    """Base class for pipeline failures surfaced as a failed result."""

    kind = "extraction"
    summary = "Extraction failed"


class ValidationError(ExtractionError):
    """Upload rejected before processing (size, type, count)."""

    kind = "validation"
    summary = "Upload rejected"


class ConversionError(ExtractionError):
    """PDF rasterization failed (tool missing, tool error, corrupt PDF)."""

    kind = "conversion"
    summary = "Could not convert PDF pages to images"


class ServiceConfigurationError(ExtractionError):
    """Extraction service is not configured (missing credentials)."""

    kind = "configuration"
    summary = "Extraction service is not configured"


class ServiceUnavailable(ExtractionError):
    """Extraction service unreachable, timed out, or returned an error status."""

    kind = "service_unavailable"
    summary = "Extraction service unavailable"


class MalformedExtractionResponse(ExtractionError):
    """Engine reply could not be parsed as JSON, even after repair."""

    kind = "malformed_response"
    summary = "Extraction service returned an unreadable response"

    def __init__(self, message: str, span: str = ""):
        super().__init__(message)
        self.span = span
