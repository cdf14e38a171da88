"""Tests for the dataset reconciler."""

import logging
from datetime import date
from unittest.mock import MagicMock

import pytest

from ground_truth_curator.datasets.reconciler import DatasetReconciler, default_dataset_name
from ground_truth_curator.exceptions import (
    DatasetNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from ground_truth_curator.records.models import RecordKind, assign_identity
from ground_truth_curator.stores.base import DatasetStore


@pytest.fixture
def records(entry_data):
    return [assign_identity(RecordKind.ENTRY, entry_data)]


class TestDefaultName:
    def test_entry_name(self):
        assert default_dataset_name(RecordKind.ENTRY, date(2024, 5, 1)) == "Dataset 2024-05-01"

    def test_document_name(self):
        assert (
            default_dataset_name("document", date(2024, 5, 1)) == "Document Dataset 2024-05-01"
        )


class TestLoad:
    def test_absent_slot(self, entry_reconciler):
        assert entry_reconciler.load() is None
        assert entry_reconciler.get_username() is None

    def test_read_failure_treated_as_absent(self, file_store, caplog):
        file_store.data_dir.mkdir(parents=True)
        (file_store.data_dir / "current-dataset.json").write_text("garbage")
        reconciler = DatasetReconciler(file_store, RecordKind.ENTRY, "current-dataset")

        with caplog.at_level(logging.WARNING):
            assert reconciler.load() is None
        assert "treating as empty" in caplog.text


class TestCreateOrReplace:
    def test_creates_envelope(self, entry_reconciler, records):
        envelope = entry_reconciler.create_or_replace(records, "alice")

        assert envelope.username == "alice"
        assert envelope.name == "Dataset 2024-05-01"
        assert envelope.created_at == envelope.updated_at
        stored = entry_reconciler.load()
        assert stored.created_at == envelope.created_at
        assert [r.id for r in stored.records] == [r.id for r in records]

    def test_explicit_name(self, entry_reconciler, records):
        envelope = entry_reconciler.create_or_replace(records, "alice", name="Sprint 3")
        assert envelope.name == "Sprint 3"

    def test_replaces_created_at(self, entry_reconciler, records):
        first = entry_reconciler.create_or_replace(records, "alice")
        second = entry_reconciler.create_or_replace([], "bob")

        assert second.created_at != first.created_at
        assert entry_reconciler.get_username() == "bob"


class TestUpdate:
    def test_keeps_identity_fields(self, entry_reconciler, records, entry_data):
        created = entry_reconciler.create_or_replace(records, "alice", name="Sprint 3")
        more = records + [assign_identity(RecordKind.ENTRY, entry_data)]

        updated = entry_reconciler.update(more)

        assert updated.name == "Sprint 3"
        assert updated.username == "alice"
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at
        assert entry_reconciler.load().record_count == 2

    def test_absent_slot_falls_back_to_create(self, entry_reconciler, records, caplog):
        with caplog.at_level(logging.WARNING):
            envelope = entry_reconciler.update(records)

        assert envelope.username == "User"
        assert envelope.record_count == 1
        assert "missing on update" in caplog.text

    def test_fallback_uses_configured_default_username(self, file_store, records):
        reconciler = DatasetReconciler(
            file_store, RecordKind.ENTRY, "current-dataset", default_username="curator"
        )
        assert reconciler.update(records).username == "curator"

    def test_fallback_on_named_store_keeps_slot_name(self, local_store, records, clock):
        reconciler = DatasetReconciler(local_store, RecordKind.ENTRY, "Sprint 3", clock=clock)

        envelope = reconciler.update(records)

        assert envelope.name == "Sprint 3"
        assert [(i.name, i.record_count) for i in local_store.list_datasets()] == [("Sprint 3", 1)]
        assert local_store.read("Sprint 3").name == "Sprint 3"

    def test_fallback_on_single_slot_store_uses_default_name(self, entry_reconciler, records):
        assert entry_reconciler.update(records).name == "Dataset 2024-05-01"

    def test_read_failure_propagates(self, records):
        store = MagicMock(spec=DatasetStore)
        store.read.side_effect = StoreReadError("boom", "current-dataset", "gcs")
        reconciler = DatasetReconciler(store, RecordKind.ENTRY, "current-dataset")

        with pytest.raises(StoreReadError):
            reconciler.update(records)
        store.write.assert_not_called()

    def test_write_failure_propagates(self, records):
        store = MagicMock(spec=DatasetStore)
        store.read.side_effect = DatasetNotFoundError("current-dataset")
        store.write.side_effect = StoreWriteError("disk full", "current-dataset", "file")
        reconciler = DatasetReconciler(store, RecordKind.ENTRY, "current-dataset")

        with pytest.raises(StoreWriteError, match="disk full"):
            reconciler.update(records)
        assert store.write.call_count == 1


class TestRenameAndClear:
    def test_rename(self, entry_reconciler, records):
        created = entry_reconciler.create_or_replace(records, "alice")
        renamed = entry_reconciler.rename("Final")

        assert renamed.name == "Final"
        assert renamed.created_at == created.created_at
        assert entry_reconciler.load().name == "Final"

    def test_rename_absent(self, entry_reconciler):
        with pytest.raises(DatasetNotFoundError):
            entry_reconciler.rename("Final")

    def test_clear(self, entry_reconciler, records):
        entry_reconciler.create_or_replace(records, "alice")
        entry_reconciler.clear()
        assert entry_reconciler.load() is None

    def test_clear_absent(self, entry_reconciler):
        entry_reconciler.clear()
        assert entry_reconciler.load() is None
