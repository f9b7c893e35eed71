"""Parse the engine's free-form reply into a PolicySnapshot.

The reply is expected to contain one JSON object but may carry prose,
markdown fences, <think> blocks, or trailing commas. Parsing is a pure
function of the reply text.
"""

import json
import logging
import math
import re

from config import settings
from errors import MalformedExtractionResponse
from models import (
    COVERAGE_FIELDS,
    POLICY_FIELDS,
    CoverageSection,
    FieldValue,
    PolicySection,
    PolicySnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.8
LOW_LIABILITY_NOTE = "Liability looks unusually low; verify."

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def locate_json_span(raw: str) -> str:
    """Return the text from the first ``{`` to the last ``}``."""
    cleaned = _THINK_BLOCK.sub("", raw or "")
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end < start:
        raise MalformedExtractionResponse(
            "No JSON object found in extraction response", span=cleaned[:500]
        )
    return cleaned[start:end + 1]


def parse_reply(raw: str) -> dict:
    """Parse the JSON object in ``raw``, with at most one repair pass."""
    span = locate_json_span(raw)

    try:
        parsed = json.loads(span)
    except ValueError as first_error:
        repaired = _TRAILING_COMMA.sub(r"\1", span)
        try:
            parsed = json.loads(repaired)
        except ValueError:
            logger.warning("Could not parse JSON from extraction response (%d chars)", len(span))
            raise MalformedExtractionResponse(
                f"Invalid JSON in extraction response: {first_error}", span=span
            ) from first_error
        logger.info("Extraction response parsed after trailing-comma repair")

    if not isinstance(parsed, dict):
        raise MalformedExtractionResponse(
            f"Extraction response is a JSON {type(parsed).__name__}, not an object", span=span
        )
    return parsed


def map_snapshot(data: dict, low_liability_threshold: float | None = None) -> PolicySnapshot:
    """Map parsed JSON onto the policy/coverage schema.

    A field is kept only if it carries a usable value; every other schema
    field is listed in missing_fields. Unknown keys are ignored.
    """
    threshold = low_liability_threshold if low_liability_threshold is not None else settings.LOW_LIABILITY_THRESHOLD

    missing: list[str] = []
    policy = {}
    coverages = {}

    for name in POLICY_FIELDS:
        field = _field_value(data.get(name))
        if field is None:
            missing.append(name)
        else:
            policy[name] = field

    for name in COVERAGE_FIELDS:
        field = _field_value(data.get(name))
        if field is None:
            missing.append(name)
        else:
            coverages[name] = field

    notes = _engine_notes(data.get("notes"))
    liability = coverages.get("liability")
    if liability is not None and _is_number(liability.value) and liability.value < threshold:
        notes.append(LOW_LIABILITY_NOTE)

    return PolicySnapshot(
        policy=PolicySection.model_validate(policy),
        coverages=CoverageSection.model_validate(coverages),
        missing_fields=missing,
        notes=notes,
    )


def parse_extraction_reply(raw: str, low_liability_threshold: float | None = None) -> PolicySnapshot:
    """Locate, parse and map the engine reply in one step."""
    return map_snapshot(parse_reply(raw), low_liability_threshold)


def _field_value(entry) -> FieldValue | None:
    """Turn one JSON entry into a FieldValue, or None if it has no value.

    Accepts ``{"value": ..., "confidence": ...}`` objects and bare scalars.
    """
    if isinstance(entry, dict):
        value = entry.get("value")
        confidence = entry.get("confidence")
    else:
        value = entry
        confidence = None

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not _is_finite_number(value):
        return None

    return FieldValue(value=value, confidence=_confidence(confidence))


def _confidence(raw) -> float:
    if not _is_finite_number(raw):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, float(raw)))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value) -> bool:
    """True for numbers representable as a finite float (ints past float range are not)."""
    if not _is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _engine_notes(raw) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [note.strip() for note in raw if isinstance(note, str) and note.strip()]
