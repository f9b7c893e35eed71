"""Three-state completeness classification of an extraction result."""

from models import TOTAL_FIELDS, ExtractionStatus

DEFAULT_THRESHOLD = 0.5


def classify(total: int, missing: int, threshold: float = DEFAULT_THRESHOLD) -> ExtractionStatus:
    """Classify by how many of ``total`` schema fields were found.

    found == 0 -> failed; found < total * threshold -> partial; else complete.
    """
    missing = min(max(missing, 0), total)
    found = total - missing

    if found <= 0:
        return ExtractionStatus.FAILED
    if found < total * threshold:
        return ExtractionStatus.PARTIAL
    return ExtractionStatus.COMPLETE


def classify_missing(missing_fields: list[str], threshold: float = DEFAULT_THRESHOLD) -> ExtractionStatus:
    return classify(TOTAL_FIELDS, len(set(missing_fields)), threshold)
