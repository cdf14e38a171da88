"""Tests for the Streamlit web UI module."""

from unittest.mock import patch

import pytest

from ground_truth_curator.records.models import RecordKind, approve, assign_identity


# =============================================================================
# Test Helper Functions
# =============================================================================


class TestAccessFunction:
    """Tests for the document workspace password check."""

    def test_check_access_valid(self):
        """Test the configured password is accepted."""
        with patch("ground_truth_curator.web.streamlit_app.settings") as mock_settings:
            mock_settings.DOCUMENT_ACCESS_PASSWORD = "secret123"

            from ground_truth_curator.web.streamlit_app import check_access

            assert check_access("secret123") is True

    def test_check_access_invalid(self):
        """Test a wrong password is refused."""
        with patch("ground_truth_curator.web.streamlit_app.settings") as mock_settings:
            mock_settings.DOCUMENT_ACCESS_PASSWORD = "secret123"

            from ground_truth_curator.web.streamlit_app import check_access

            assert check_access("wrong") is False

    def test_check_access_unconfigured(self):
        """Test nothing is accepted while no password is configured."""
        with patch("ground_truth_curator.web.streamlit_app.settings") as mock_settings:
            mock_settings.DOCUMENT_ACCESS_PASSWORD = ""

            from ground_truth_curator.web.streamlit_app import check_access

            assert check_access("") is False
            assert check_access("anything") is False


class TestFormatting:
    """Tests for display helpers."""

    def test_format_timestamp(self):
        from ground_truth_curator.web.streamlit_app import format_timestamp

        assert format_timestamp("2024-05-01T10:30:00.000Z") == "2024-05-01 10:30"
        assert format_timestamp(None) == ""
        assert format_timestamp("yesterday") == "yesterday"

    def test_split_lines(self):
        from ground_truth_curator.web.streamlit_app import split_lines

        assert split_lines("  Interpretation \n\n Definitions\n") == ["Interpretation", "Definitions"]
        assert split_lines("") == []

    def test_truncate(self):
        from ground_truth_curator.web.streamlit_app import truncate

        assert truncate("short") == "short"
        assert truncate("x" * 100, 10) == "xxxxxxx..."


class TestRecordsDataframe:
    """Tests for the tabular record view."""

    def test_entries(self, entry_data):
        from ground_truth_curator.web.streamlit_app import records_dataframe

        records = [
            assign_identity(RecordKind.ENTRY, entry_data),
            approve(assign_identity(RecordKind.ENTRY, entry_data), "alice", "2024-05-01T10:30:00.000Z"),
        ]
        df = records_dataframe(records, RecordKind.ENTRY)

        assert list(df["Approved"]) == ["Pending", "Yes"]
        assert list(df["Approved By"]) == ["", "alice"]
        assert df["Date Approved"].iloc[1] == "2024-05-01 10:30"
        assert "id" not in df.columns

    def test_documents(self, document_data):
        from ground_truth_curator.web.streamlit_app import records_dataframe

        df = records_dataframe([assign_identity(RecordKind.DOCUMENT, document_data)], RecordKind.DOCUMENT)

        assert df.iloc[0]["ID"] == "s-12"
        assert df.iloc[0]["Chapter"] == "1"
        assert df.iloc[0]["Part"] == "II"

    def test_empty(self):
        from ground_truth_curator.web.streamlit_app import records_dataframe

        df = records_dataframe([], RecordKind.ENTRY)
        assert df.empty
        assert "Chunk ID" in df.columns


class TestDocumentFormData:
    """Tests for building document fields from the form."""

    @pytest.fixture
    def form(self):
        return {
            "doc_id": "s-12",
            "text": "Section 12.",
            "page_num": 4,
            "chapter": "1",
            "part": "",
            "schedule": "",
            "schedule_title": "",
            "doc_type": "section",
            "side_notes": "Interpretation\n\nDefinitions",
            "references": "",
        }

    def test_new_document(self, form):
        from ground_truth_curator.web.streamlit_app import document_form_data

        data = document_form_data(**form)

        assert data["id"] == "s-12"
        assert data["metadata"]["part"] is None
        assert data["metadata"]["side_notes"] == ["Interpretation", "Definitions"]
        assert data["metadata"]["references"] == []

    def test_keeps_extra_fields(self, form):
        from ground_truth_curator.web.streamlit_app import document_form_data

        base = {"id": "old", "source": "gazette", "metadata": {"section_no": "12"}}
        data = document_form_data(**form, base=base)

        assert data["id"] == "s-12"
        assert data["source"] == "gazette"
        assert data["metadata"]["section_no"] == "12"
        assert base["id"] == "old"


class TestRecordLabel:
    def test_labels(self, entry_data, document_data):
        from ground_truth_curator.web.streamlit_app import record_label

        assert record_label(assign_identity(RecordKind.ENTRY, entry_data)) == "chunk_001 - What is RAG?"
        assert record_label(assign_identity(RecordKind.DOCUMENT, document_data)) == "s-12 (page 4)"
