"""Shared fixtures for curator tests."""

import itertools

import pytest

from ground_truth_curator.datasets.reconciler import DatasetReconciler
from ground_truth_curator.datasets.session import ExportArchive, ReviewSession
from ground_truth_curator.records.models import RecordKind
from ground_truth_curator.stores.file_store import FileDatasetStore
from ground_truth_curator.stores.local_store import LocalDatasetStore


@pytest.fixture
def clock():
    """Deterministic, strictly increasing timestamps."""
    ticks = itertools.count()

    def now() -> str:
        return f"2024-05-01T10:00:{next(ticks):02d}.000Z"

    return now


@pytest.fixture
def file_store(tmp_path):
    return FileDatasetStore(tmp_path / "data")


@pytest.fixture
def local_store(tmp_path):
    return LocalDatasetStore(f"sqlite:///{tmp_path / 'curator.db'}", namespace="entry")


@pytest.fixture
def entry_reconciler(file_store, clock):
    return DatasetReconciler(file_store, RecordKind.ENTRY, "current-dataset", clock=clock)


@pytest.fixture
def entry_session(entry_reconciler, tmp_path):
    return ReviewSession(
        RecordKind.ENTRY,
        entry_reconciler,
        label="ground_truth",
        archive=ExportArchive(tmp_path / "exports"),
    )


@pytest.fixture
def document_session(file_store, clock):
    reconciler = DatasetReconciler(
        file_store, RecordKind.DOCUMENT, "current-document-dataset", clock=clock
    )
    return ReviewSession(RecordKind.DOCUMENT, reconciler, label="legal_documents")


@pytest.fixture
def named_session(local_store, clock):
    reconciler = DatasetReconciler(local_store, RecordKind.ENTRY, "current-dataset", clock=clock)
    return ReviewSession(RecordKind.ENTRY, reconciler, label="ground_truth")


@pytest.fixture
def entry_data():
    return {
        "question": "What is RAG?",
        "ground_truth_chunk_id": "chunk_001",
        "ground_truth_text": "Retrieval-augmented generation combines search with an LLM.",
    }


@pytest.fixture
def document_data():
    return {
        "id": "s-12",
        "text": "Section 12. In this Act, unless the context otherwise requires...",
        "page_num": 4,
        "metadata": {
            "chapter": "1",
            "part": "II",
            "schedule": None,
            "schedule_title": None,
            "type": "section",
            "side_notes": ["Interpretation"],
            "references": [],
        },
    }
