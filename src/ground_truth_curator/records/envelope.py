"""Persisted wrapper around a record collection."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from ground_truth_curator.records.models import Record, RecordKind, record_model


class DatasetEnvelope(BaseModel):
    """A named, owned, timestamped record collection.

    ``created_at`` is fixed when the envelope is created; ``updated_at`` is
    refreshed on every write. Records keep their internal identities here.
    """

    name: str = ""
    username: str = ""
    created_at: str
    updated_at: str
    kind: RecordKind = RecordKind.ENTRY
    records: list[Record] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _parse_records(cls, data: Any) -> Any:
        """Build records with the model matching ``kind``.

        Envelopes written by older versions keyed records by ``entries`` or
        ``documents`` and had no ``kind``.
        """
        if not isinstance(data, dict):
            return data

        data = dict(data)
        if "records" not in data:
            if "documents" in data:
                data.setdefault("kind", RecordKind.DOCUMENT)
                data["records"] = data.pop("documents")
            else:
                data["records"] = data.pop("entries", [])

        kind = RecordKind(data.get("kind") or RecordKind.ENTRY)
        model = record_model(kind)
        data["kind"] = kind
        data["records"] = [
            r if isinstance(r, model) else model.model_validate(r)
            for r in data["records"] or []
        ]
        return data

    @property
    def record_count(self) -> int:
        """Number of records in the envelope."""
        return len(self.records)

    def to_json(self) -> str:
        """Serialize for storage (pretty-printed, identities included)."""
        return self.model_dump_json(indent=2, exclude_unset=True)

    @classmethod
    def empty(cls, kind: RecordKind | str, now: str) -> "DatasetEnvelope":
        """Blank envelope used as a tombstone by stores that never delete."""
        return cls(name="", username="", created_at=now, updated_at=now, kind=kind, records=[])
