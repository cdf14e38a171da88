"""Record models for ground truth entries and legal documents.

Each record kind carries exactly one internal identity field that is generated
once, used for every lookup inside a collection, and never exported:

- ``GroundTruthEntry.id``
- ``LegalDocument.internal_id``

Business identifiers (``ground_truth_chunk_id`` and ``LegalDocument.id``) are
ordinary content.
"""

import secrets
import string
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecordKind(str, Enum):
    """Kinds of records a dataset can hold."""

    ENTRY = "entry"  # Question / ground truth pair
    DOCUMENT = "document"  # Paginated legal text with metadata


APPROVAL_FIELDS = ("approved", "date_approved", "approved_by")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Generate an internal record identity.

    Millisecond timestamp plus a random base36 suffix, so ids stay unique
    even when many are generated within the same millisecond.
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}_{suffix}"


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class _RecordBase(BaseModel):
    """Identity and approval helpers shared by both record kinds."""

    KIND: ClassVar[RecordKind]
    IDENTITY_FIELD: ClassVar[str]
    BUSINESS_ID_FIELD: ClassVar[str]
    # Dotted paths reach into nested models, e.g. "metadata.chapter"
    SEARCH_FIELDS: ClassVar[tuple[str, ...]]

    @field_validator("approved", mode="before", check_fields=False)
    @classmethod
    def _default_approved(cls, value: Any) -> Any:
        return value or False

    @property
    def identity(self) -> str:
        """Internal identity used for lookup, update and delete."""
        return getattr(self, self.IDENTITY_FIELD)

    @property
    def business_id(self) -> str:
        """User-visible identifier used for sorting."""
        return getattr(self, self.BUSINESS_ID_FIELD)

    def search_values(self) -> list[str]:
        """Non-empty values of ``SEARCH_FIELDS``, matched by free-text search."""
        values: list[str] = []
        for path in self.SEARCH_FIELDS:
            value: Any = self
            for attr in path.split("."):
                value = getattr(value, attr, None)
                if value is None:
                    break
            if value:
                values.append(value)
        return values


class GroundTruthEntry(_RecordBase):
    """A question paired with the chunk that answers it."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    KIND: ClassVar[RecordKind] = RecordKind.ENTRY
    IDENTITY_FIELD: ClassVar[str] = "id"
    BUSINESS_ID_FIELD: ClassVar[str] = "ground_truth_chunk_id"
    SEARCH_FIELDS: ClassVar[tuple[str, ...]] = (
        "question",
        "ground_truth_chunk_id",
        "ground_truth_text",
    )

    question: str = ""
    ground_truth_chunk_id: str = ""
    ground_truth_text: str = ""
    approved: bool = False
    date_approved: str | None = None
    approved_by: str | None = None
    id: str = ""

    @field_validator("question", "ground_truth_chunk_id", "ground_truth_text", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class DocumentMetadata(BaseModel):
    """Structural metadata of a legal document page.

    Unknown keys are kept so imported files round-trip unchanged.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    chapter: str | None = None
    part: str | None = None
    schedule: str | None = None
    schedule_title: str | None = None
    type: str | None = None
    side_notes: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)

    @field_validator("side_notes", "references", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value


class LegalDocument(_RecordBase):
    """One page-level unit of a legal text."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    KIND: ClassVar[RecordKind] = RecordKind.DOCUMENT
    IDENTITY_FIELD: ClassVar[str] = "internal_id"
    BUSINESS_ID_FIELD: ClassVar[str] = "id"
    SEARCH_FIELDS: ClassVar[tuple[str, ...]] = (
        "id",
        "text",
        "metadata.chapter",
        "metadata.part",
        "metadata.schedule",
    )

    id: str = ""
    text: str = ""
    page_num: int | None = None
    metadata: DocumentMetadata | None = None
    approved: bool = False
    date_approved: str | None = None
    approved_by: str | None = None
    internal_id: str = ""

    @field_validator("id", "text", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


Record = Union[GroundTruthEntry, LegalDocument]
RecordT = TypeVar("RecordT", GroundTruthEntry, LegalDocument)

RECORD_MODELS: dict[RecordKind, type[Record]] = {
    RecordKind.ENTRY: GroundTruthEntry,
    RecordKind.DOCUMENT: LegalDocument,
}


def record_model(kind: RecordKind | str) -> type[Record]:
    """Get the model class for a record kind."""
    return RECORD_MODELS[RecordKind(kind)]


# =============================================================================
# Validation and lifecycle
# =============================================================================


def _as_mapping(candidate: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    if isinstance(candidate, BaseModel):
        return candidate.model_dump(exclude_unset=True)
    return dict(candidate)


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def validate_record(
    kind: RecordKind | str, candidate: Mapping[str, Any] | BaseModel
) -> str | None:
    """Check the required fields of a candidate record.

    Args:
        kind: Record kind the candidate should become
        candidate: Form data or an existing record

    Returns:
        Error message for the first missing field, or None if valid
    """
    data = _as_mapping(candidate)

    if RecordKind(kind) == RecordKind.ENTRY:
        if _blank(data.get("question")):
            return "Question is required"
        if _blank(data.get("ground_truth_chunk_id")):
            return "Ground truth chunk ID is required"
        if _blank(data.get("ground_truth_text")):
            return "Ground truth text is required"
        return None

    if _blank(data.get("id")):
        return "Document ID is required"
    if _blank(data.get("text")):
        return "Document text is required"
    if data.get("page_num") is None:
        return "Page number is required"
    if data.get("metadata") is None:
        return "Metadata is required"
    return None


def assign_identity(
    kind: RecordKind | str, candidate: Mapping[str, Any] | BaseModel
) -> Record:
    """Build a new record with a fresh internal identity and no approval."""
    model = record_model(kind)
    data = _as_mapping(candidate)
    data[model.IDENTITY_FIELD] = generate_id()
    data.update(approved=False, date_approved=None, approved_by=None)
    return model.model_validate(data)


def hydrate_record(kind: RecordKind | str, raw: Mapping[str, Any]) -> Record:
    """Build a record from imported data.

    Keeps an identity already present in the data, otherwise generates one.
    ``approved`` defaults to False when absent.
    """
    model = record_model(kind)
    data = dict(raw)
    if not data.get(model.IDENTITY_FIELD):
        data[model.IDENTITY_FIELD] = generate_id()
    data["approved"] = data.get("approved") or False
    return model.model_validate(data)


def approve(record: RecordT, approver: str, now: str | None = None) -> RecordT:
    """Return a copy of the record approved by ``approver``.

    Approving an approved record re-stamps the date and approver.
    """
    return record.model_copy(
        update={
            "approved": True,
            "date_approved": now or utc_now_iso(),
            "approved_by": approver,
        }
    )


def revoke_approval(record: RecordT) -> RecordT:
    """Return a copy of the record with all approval fields cleared."""
    return record.model_copy(
        update={"approved": False, "date_approved": None, "approved_by": None}
    )
