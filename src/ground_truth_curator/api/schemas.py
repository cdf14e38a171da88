"""API request and response schemas."""

from typing import Any

from pydantic import BaseModel, Field

from ground_truth_curator.codec import ExportFormat
from ground_truth_curator.datasets.collection import InsertPosition


class ImportRequest(BaseModel):
    """Import a file into an empty dataset."""

    content: str = Field(..., description="Raw file content")
    format: ExportFormat = Field(default=ExportFormat.JSON, description="File format")
    username: str = Field(..., min_length=1, description="Curator who owns the dataset")

    model_config = {"json_schema_extra": {
        "example": {
            "content": '[{"question": "What is RAG?", "ground_truth_chunk_id": "chunk_001", '
            '"ground_truth_text": "Retrieval-augmented generation..."}]',
            "format": "json",
            "username": "alice",
        }
    }}


class ImportResponse(BaseModel):
    """Result of an import."""

    imported: int = Field(..., description="Number of records imported")
    dataset_name: str | None = Field(default=None, description="Name of the new dataset")


class AddRecordRequest(BaseModel):
    """Add a record to the dataset."""

    record: dict[str, Any] = Field(..., description="Record fields")
    position: InsertPosition | None = Field(
        default=None, description="Documents only: insert before or after target_index"
    )
    target_index: int | None = Field(default=None, description="Row the position refers to")
    username: str | None = Field(
        default=None, description="Curator name, needed when no dataset exists yet"
    )

    model_config = {"json_schema_extra": {
        "example": {
            "record": {
                "id": "s-12",
                "text": "Section 12. Definitions...",
                "page_num": 4,
                "metadata": {"chapter": "1", "part": "II"},
            },
            "position": "after",
            "target_index": 3,
        }
    }}


class EditRecordRequest(BaseModel):
    """Replace a record's content."""

    record: dict[str, Any] = Field(..., description="Replacement record fields")


class ApproveRequest(BaseModel):
    """Approve a record."""

    approver: str | None = Field(
        default=None, description="Approver name (defaults to the dataset owner)"
    )


class DatasetResponse(BaseModel):
    """The persisted dataset envelope, or null when none exists."""

    dataset: dict[str, Any] | None = None


class RecordResponse(BaseModel):
    """A single record, including its internal identity."""

    record: dict[str, Any]


class RecordsResponse(BaseModel):
    """Filtered and sorted view of the dataset."""

    records: list[dict[str, Any]] = Field(default_factory=list)
    total: int = Field(..., description="Records matching the filters")
    dataset_total: int = Field(..., description="Records in the dataset")


class StatsResponse(BaseModel):
    """Approval progress of the dataset."""

    total: int
    approved: int
    pending: int
    approval_rate: float = Field(..., description="Percentage, one decimal")
