"""Conversion between record collections and JSON, JSONL and CSV files.

Which fields leave the application is decided by ``EXCLUDED_FIELDS``, keyed by
(record kind, format). Internal identities never leave. Document JSONL exports
are content-only and also drop the approval fields, while entry JSONL exports
keep them.
"""

import csv
import io
import json
import logging
from datetime import date
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ground_truth_curator.exceptions import DecodeError, UnsupportedFormatError
from ground_truth_curator.records.models import (
    APPROVAL_FIELDS,
    Record,
    RecordKind,
    hydrate_record,
)

logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    """Exchange file formats."""

    JSON = "json"
    JSONL = "jsonl"
    CSV = "csv"


EXCLUDED_FIELDS: dict[tuple[RecordKind, ExportFormat], frozenset[str]] = {
    (RecordKind.ENTRY, ExportFormat.JSON): frozenset({"id"}),
    (RecordKind.ENTRY, ExportFormat.JSONL): frozenset({"id"}),
    (RecordKind.ENTRY, ExportFormat.CSV): frozenset({"id"}),
    (RecordKind.DOCUMENT, ExportFormat.JSON): frozenset({"internal_id"}),
    (RecordKind.DOCUMENT, ExportFormat.JSONL): frozenset({"internal_id", *APPROVAL_FIELDS}),
}

CSV_COLUMNS = [
    "question",
    "ground_truth_chunk_id",
    "ground_truth_text",
    "approved",
    "date_approved",
    "approved_by",
]

MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.JSONL: "application/jsonl",
    ExportFormat.CSV: "text/csv",
}


def supported_formats(kind: RecordKind | str) -> list[ExportFormat]:
    """Formats a record kind can be exported to."""
    kind = RecordKind(kind)
    return [fmt for fmt in ExportFormat if (kind, fmt) in EXCLUDED_FIELDS]


def _excluded(kind: RecordKind, fmt: ExportFormat) -> frozenset[str]:
    try:
        return EXCLUDED_FIELDS[(kind, fmt)]
    except KeyError:
        raise UnsupportedFormatError(kind.value, fmt.value) from None


def project(record: Record, kind: RecordKind | str, fmt: ExportFormat | str) -> dict[str, Any]:
    """Project a record onto the fields exported for ``fmt``.

    Only fields that were present on the record are emitted, so imported
    files round-trip without gaining keys. Unset approval stamps are omitted
    rather than written as null.
    """
    excluded = _excluded(RecordKind(kind), ExportFormat(fmt))
    data = record.model_dump(mode="json", exclude=set(excluded), exclude_unset=True)
    for stamp in ("date_approved", "approved_by"):
        if stamp in data and data[stamp] is None:
            del data[stamp]
    return data


# =============================================================================
# Encoding
# =============================================================================


def _escape_csv(value: Any) -> str:
    """Quote a CSV field iff it contains a comma, a double quote or a newline."""
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    if "," in text or '"' in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def encode(records: list[Record], kind: RecordKind | str, fmt: ExportFormat | str) -> str:
    """Serialize records for export.

    Args:
        records: Records in collection order
        kind: Record kind of the collection
        fmt: Target format

    Returns:
        File content. An empty collection encodes to "" for CSV (no header).

    Raises:
        UnsupportedFormatError: If the kind cannot be exported to ``fmt``
    """
    kind = RecordKind(kind)
    fmt = ExportFormat(fmt)
    _excluded(kind, fmt)

    if fmt == ExportFormat.JSON:
        rows = [project(r, kind, fmt) for r in records]
        return json.dumps(rows, indent=2, ensure_ascii=False)

    if fmt == ExportFormat.JSONL:
        return "\n".join(
            json.dumps(project(r, kind, fmt), ensure_ascii=False) for r in records
        )

    if not records:
        return ""
    lines = [",".join(CSV_COLUMNS)]
    for record in records:
        lines.append(",".join(_escape_csv(getattr(record, col)) for col in CSV_COLUMNS))
    return "\n".join(lines)


def export_filename(
    kind: RecordKind | str,
    fmt: ExportFormat | str,
    label: str,
    today: date | None = None,
) -> str:
    """Build the download filename for an export.

    Entries: ``{label}_export_{YYYY-MM-DD}.{ext}``
    Documents: ``{label}_{YYYY-MM-DD}.{ext}``
    """
    kind = RecordKind(kind)
    fmt = ExportFormat(fmt)
    stamp = (today or date.today()).isoformat()
    if kind == RecordKind.ENTRY:
        return f"{label}_export_{stamp}.{fmt.value}"
    return f"{label}_{stamp}.{fmt.value}"


# =============================================================================
# Decoding
# =============================================================================


def _hydrate(kind: RecordKind, raw: Any, where: str) -> Record:
    if not isinstance(raw, dict):
        raise DecodeError(f"Invalid record {where}: expected an object")
    try:
        return hydrate_record(kind, raw)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise DecodeError(f"Invalid record {where}: {field}: {first['msg']}") from e


def _decode_json(text: str, kind: RecordKind) -> list[Record]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise DecodeError("Invalid JSON format: expected an array")

    return [_hydrate(kind, raw, f"at index {i}") for i, raw in enumerate(data)]


def _decode_jsonl(text: str, kind: RecordKind) -> list[Record]:
    records: list[Record] = []
    for line_num, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as e:
            logger.debug(f"JSONL parse failure on line {line_num}: {e}")
            raise DecodeError(f"Invalid JSON on line {line_num}") from e
        records.append(_hydrate(kind, raw, f"on line {line_num}"))

    if not records:
        raise DecodeError("No valid documents found in JSONL file")
    return records


def _decode_csv(text: str, kind: RecordKind) -> list[Record]:
    reader = csv.DictReader(io.StringIO(text, newline=""))
    if reader.fieldnames is None:
        return []

    missing = [c for c in CSV_COLUMNS[:3] if c not in reader.fieldnames]
    if missing:
        raise DecodeError(f"Invalid CSV: missing columns {', '.join(missing)}")

    records: list[Record] = []
    for row_num, row in enumerate(reader, start=1):
        raw: dict[str, Any] = {c: row.get(c) or "" for c in CSV_COLUMNS[:3]}
        raw["approved"] = (row.get("approved") or "").strip().lower() == "true"
        for stamp in ("date_approved", "approved_by"):
            if row.get(stamp):
                raw[stamp] = row[stamp]
        records.append(_hydrate(kind, raw, f"on row {row_num}"))
    return records


def decode(text: str, kind: RecordKind | str, fmt: ExportFormat | str) -> list[Record]:
    """Parse an import file into records.

    Decoding is all-or-nothing: any malformed element rejects the whole file.
    Records without an internal identity get a fresh one.

    Args:
        text: File content
        kind: Record kind to build
        fmt: Format of ``text``

    Returns:
        Parsed records in file order

    Raises:
        DecodeError: If the content is malformed
        UnsupportedFormatError: If the kind cannot be imported from ``fmt``
    """
    kind = RecordKind(kind)
    fmt = ExportFormat(fmt)
    _excluded(kind, fmt)

    if fmt == ExportFormat.JSON:
        return _decode_json(text, kind)
    if fmt == ExportFormat.JSONL:
        return _decode_jsonl(text, kind)
    return _decode_csv(text, kind)


def format_from_filename(filename: str) -> ExportFormat:
    """Infer the format from a file extension."""
    suffix = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    try:
        return ExportFormat(suffix)
    except ValueError:
        raise DecodeError(f"Unsupported file type: '{filename}'") from None
