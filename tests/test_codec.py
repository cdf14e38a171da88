"""Tests for import/export encoding and decoding."""

import json
from datetime import date

import pytest

from ground_truth_curator.codec import (
    CSV_COLUMNS,
    EXCLUDED_FIELDS,
    ExportFormat,
    decode,
    encode,
    export_filename,
    format_from_filename,
    project,
    supported_formats,
)
from ground_truth_curator.exceptions import DecodeError, UnsupportedFormatError
from ground_truth_curator.records.models import (
    RecordKind,
    approve,
    assign_identity,
    hydrate_record,
)


@pytest.fixture
def entries(entry_data):
    first = assign_identity(RecordKind.ENTRY, entry_data)
    second = approve(
        assign_identity(
            RecordKind.ENTRY,
            {
                "question": 'Say "hi", then\nwave',
                "ground_truth_chunk_id": "chunk_002",
                "ground_truth_text": "plain",
            },
        ),
        "alice",
        "2024-05-01T10:00:00.000Z",
    )
    return [first, second]


@pytest.fixture
def documents(document_data):
    first = hydrate_record(RecordKind.DOCUMENT, {**document_data, "source": "gazette"})
    second = approve(
        hydrate_record(RecordKind.DOCUMENT, {**document_data, "id": "s-13", "page_num": 5}),
        "bob",
        "2024-05-02T10:00:00.000Z",
    )
    return [first, second]


class TestProjection:
    """Which fields leave the application per format."""

    def test_table_covers_supported_pairs(self):
        assert (RecordKind.DOCUMENT, ExportFormat.CSV) not in EXCLUDED_FIELDS
        assert supported_formats(RecordKind.ENTRY) == list(ExportFormat)
        assert supported_formats(RecordKind.DOCUMENT) == [ExportFormat.JSON, ExportFormat.JSONL]

    @pytest.mark.parametrize("fmt", [ExportFormat.JSON, ExportFormat.JSONL, ExportFormat.CSV])
    def test_entry_identity_never_exported(self, entries, fmt):
        content = encode(entries, RecordKind.ENTRY, fmt)
        for record in entries:
            assert record.id not in content

    @pytest.mark.parametrize("fmt", [ExportFormat.JSON, ExportFormat.JSONL])
    def test_document_identity_never_exported(self, documents, fmt):
        content = encode(documents, RecordKind.DOCUMENT, fmt)
        assert "internal_id" not in content
        for record in documents:
            assert record.internal_id not in content

    def test_document_jsonl_strips_approval(self, documents):
        lines = encode(documents, RecordKind.DOCUMENT, ExportFormat.JSONL).split("\n")
        approved = json.loads(lines[1])
        assert "approved" not in approved
        assert "approved_by" not in approved
        assert "date_approved" not in approved

    def test_document_json_keeps_approval(self, documents):
        rows = json.loads(encode(documents, RecordKind.DOCUMENT, ExportFormat.JSON))
        assert rows[1]["approved"] is True
        assert rows[1]["approved_by"] == "bob"

    def test_unset_stamps_omitted(self, entries):
        data = project(entries[0], RecordKind.ENTRY, ExportFormat.JSON)
        assert data["approved"] is False
        assert "date_approved" not in data
        assert "approved_by" not in data

    def test_document_extras_and_metadata_nulls_kept(self, documents):
        data = project(documents[0], RecordKind.DOCUMENT, ExportFormat.JSONL)
        assert data["source"] == "gazette"
        assert data["metadata"]["schedule"] is None

    def test_field_order_follows_model(self, entries):
        data = project(entries[1], RecordKind.ENTRY, ExportFormat.JSON)
        assert list(data) == [
            "question",
            "ground_truth_chunk_id",
            "ground_truth_text",
            "approved",
            "date_approved",
            "approved_by",
        ]


class TestEncode:
    def test_json_is_pretty_printed(self, entries):
        content = encode(entries, RecordKind.ENTRY, ExportFormat.JSON)
        assert content.startswith("[\n  {\n    ")

    def test_json_keeps_non_ascii(self, entry_data):
        entry_data["question"] = "Qu'est-ce que la procédure?"
        record = assign_identity(RecordKind.ENTRY, entry_data)
        assert "procédure" in encode([record], RecordKind.ENTRY, ExportFormat.JSON)

    def test_jsonl_one_object_per_line(self, entries):
        lines = encode(entries, RecordKind.ENTRY, ExportFormat.JSONL).split("\n")
        assert len(lines) == 2
        assert json.loads(lines[0])["ground_truth_chunk_id"] == "chunk_001"

    def test_csv_header_and_quoting(self, entries):
        content = encode(entries, RecordKind.ENTRY, ExportFormat.CSV)
        header, first, second = content.split("\n", 2)

        assert header == ",".join(CSV_COLUMNS)
        assert first.startswith("What is RAG?,chunk_001,")
        assert first.endswith(",false,,")
        assert second == (
            '"Say ""hi"", then\nwave",chunk_002,plain,true,2024-05-01T10:00:00.000Z,alice'
        )

    def test_csv_empty_collection(self):
        assert encode([], RecordKind.ENTRY, ExportFormat.CSV) == ""

    def test_json_empty_collection(self):
        assert encode([], RecordKind.ENTRY, ExportFormat.JSON) == "[]"

    def test_documents_csv_unsupported(self, documents):
        with pytest.raises(UnsupportedFormatError):
            encode(documents, RecordKind.DOCUMENT, ExportFormat.CSV)


class TestDecodeJson:
    def test_assigns_identity_and_default_approval(self, entry_data):
        records = decode(json.dumps([entry_data]), RecordKind.ENTRY, "json")
        assert len(records) == 1
        assert records[0].id
        assert records[0].approved is False

    def test_rejects_non_array(self, entry_data):
        with pytest.raises(DecodeError, match="Invalid JSON format: expected an array"):
            decode(json.dumps(entry_data), RecordKind.ENTRY, "json")

    def test_rejects_unparseable(self):
        with pytest.raises(DecodeError, match="^Invalid JSON: "):
            decode("[{", RecordKind.ENTRY, "json")

    def test_rejects_non_object_element(self, entry_data):
        with pytest.raises(DecodeError, match="Invalid record at index 1: expected an object"):
            decode(json.dumps([entry_data, 3]), RecordKind.ENTRY, "json")

    def test_imported_approval_kept(self, entry_data):
        entry_data.update(approved=True, date_approved="2024-01-01T00:00:00.000Z", approved_by="x")
        record = decode(json.dumps([entry_data]), RecordKind.ENTRY, "json")[0]
        assert record.approved is True
        assert record.approved_by == "x"


class TestDecodeJsonl:
    def test_skips_blank_lines(self, document_data):
        line = json.dumps(document_data)
        records = decode(f"{line}\n\n   \n{line}\n", RecordKind.DOCUMENT, "jsonl")
        assert len(records) == 2
        assert records[0].internal_id != records[1].internal_id

    def test_malformed_line_rejects_everything(self, document_data):
        """A bad third line yields an error for line 3 and no records."""
        good = json.dumps(document_data)
        text = "\n".join([good, good, "{not json", good, good])
        with pytest.raises(DecodeError, match="^Invalid JSON on line 3$"):
            decode(text, RecordKind.DOCUMENT, "jsonl")

    def test_line_numbers_count_blank_lines(self, document_data):
        good = json.dumps(document_data)
        with pytest.raises(DecodeError, match="line 3"):
            decode(f"{good}\n\n{{", RecordKind.DOCUMENT, "jsonl")

    def test_no_documents(self):
        with pytest.raises(DecodeError, match="No valid documents found in JSONL file"):
            decode("\n  \n", RecordKind.DOCUMENT, "jsonl")


class TestDecodeCsv:
    def test_roundtrip_preserves_content(self, entries):
        text = encode(entries, RecordKind.ENTRY, ExportFormat.CSV)
        records = decode(text, RecordKind.ENTRY, ExportFormat.CSV)

        assert [r.question for r in records] == [e.question for e in entries]
        assert records[1].approved is True
        assert records[1].approved_by == "alice"
        assert records[0].approved is False
        assert records[0].date_approved is None

    def test_missing_columns(self):
        with pytest.raises(DecodeError, match="missing columns"):
            decode("question,approved\nq,true", RecordKind.ENTRY, "csv")

    def test_documents_unsupported(self):
        with pytest.raises(UnsupportedFormatError):
            decode("id,text", RecordKind.DOCUMENT, "csv")


class TestRoundTrip:
    """Export then import keeps content; identities are fresh."""

    @pytest.mark.parametrize("fmt", [ExportFormat.JSON, ExportFormat.JSONL, ExportFormat.CSV])
    def test_entries_get_fresh_ids(self, entries, fmt):
        restored = decode(encode(entries, RecordKind.ENTRY, fmt), RecordKind.ENTRY, fmt)

        assert [r.question for r in restored] == [e.question for e in entries]
        assert [r.approved for r in restored] == [False, True]
        new_ids = [r.id for r in restored]
        assert all(new_ids)
        assert len(set(new_ids)) == len(new_ids)
        assert not set(new_ids) & {e.id for e in entries}

    @pytest.mark.parametrize("fmt", [ExportFormat.JSON, ExportFormat.JSONL])
    def test_documents(self, documents, fmt):
        content = encode(documents, RecordKind.DOCUMENT, fmt)
        restored = decode(content, RecordKind.DOCUMENT, fmt)

        assert [r.id for r in restored] == ["s-12", "s-13"]
        assert restored[0].model_dump()["source"] == "gazette"
        assert restored[0].internal_id != documents[0].internal_id

    def test_imported_file_reexports_unchanged(self, document_data):
        """Keys absent from the imported file are not added on export."""
        text = json.dumps({"id": "s-1", "text": "t", "page_num": 1, "metadata": {"chapter": "1"}})
        records = decode(text, RecordKind.DOCUMENT, ExportFormat.JSONL)
        assert encode(records, RecordKind.DOCUMENT, ExportFormat.JSONL) == text


class TestFilenames:
    def test_entry_filename(self):
        assert (
            export_filename(RecordKind.ENTRY, "csv", "ground_truth", date(2024, 5, 1))
            == "ground_truth_export_2024-05-01.csv"
        )

    def test_document_filename(self):
        assert (
            export_filename(RecordKind.DOCUMENT, "jsonl", "legal_documents", date(2024, 5, 1))
            == "legal_documents_2024-05-01.jsonl"
        )

    def test_format_from_filename(self):
        assert format_from_filename("Data.JSONL") == ExportFormat.JSONL
        with pytest.raises(DecodeError):
            format_from_filename("notes.txt")
