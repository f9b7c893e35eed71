"""Pydantic models for uploads, extracted fields and the response envelope.

Wire format is camelCase to match the browser client; attributes are
snake_case and mapped through an alias generator.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Schema field names, in the order they are reported in missingFields
POLICY_FIELDS: tuple[str, ...] = (
    "carrier",
    "effectiveDate",
    "expirationDate",
    "premium",
)
COVERAGE_FIELDS: tuple[str, ...] = (
    "dwelling",
    "otherStructures",
    "personalProperty",
    "lossOfUse",
    "liability",
    "medPay",
    "waterBackup",
    "earthquake",
    "moldPropertyDamage",
    "moldLiability",
    "deductible",
)
TOTAL_FIELDS = len(POLICY_FIELDS) + len(COVERAGE_FIELDS)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractionStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


class UploadedFile(BaseModel):
    """One uploaded file, held in memory for the duration of a request."""

    filename: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class FieldValue(BaseModel):
    value: str | int | float | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class PolicySection(CamelModel):
    carrier: FieldValue | None = None
    effective_date: FieldValue | None = None
    expiration_date: FieldValue | None = None
    premium: FieldValue | None = None


class CoverageSection(CamelModel):
    dwelling: FieldValue | None = None
    other_structures: FieldValue | None = None
    personal_property: FieldValue | None = None
    loss_of_use: FieldValue | None = None
    liability: FieldValue | None = None
    med_pay: FieldValue | None = None
    water_backup: FieldValue | None = None
    earthquake: FieldValue | None = None
    mold_property_damage: FieldValue | None = None
    mold_liability: FieldValue | None = None
    deductible: FieldValue | None = None


class PolicySnapshot(CamelModel):
    """Parsed engine output for one logical document."""

    policy: PolicySection = Field(default_factory=PolicySection)
    coverages: CoverageSection = Field(default_factory=CoverageSection)
    missing_fields: list[str] = []
    notes: list[str] = []


class DocumentInfo(CamelModel):
    id: str
    file_name: str
    uploaded_at: str


class ExtractionResult(CamelModel):
    """Response envelope returned for every extraction request."""

    status: ExtractionStatus
    document: DocumentInfo
    policy: PolicySection = Field(default_factory=PolicySection)
    coverages: CoverageSection = Field(default_factory=CoverageSection)
    missing_fields: list[str] = []
    notes: list[str] = []
    extraction_id: str
    error: str | None = None

    # Error kind for the HTTP layer, never serialized
    failure_kind: str | None = Field(default=None, exclude=True)

    def to_response(self) -> dict:
        """Serialize to the camelCase JSON envelope, omitting absent fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
