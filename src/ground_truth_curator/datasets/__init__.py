"""Dataset synchronization: reconciler, review session and collection views."""

from ground_truth_curator.datasets.collection import (
    ApprovalFilter,
    DatasetStats,
    InsertPosition,
    SortDirection,
    collection_stats,
    filter_records,
    sort_records,
)
from ground_truth_curator.datasets.reconciler import DatasetReconciler, default_dataset_name
from ground_truth_curator.datasets.session import (
    DeleteConfirmation,
    ExportArchive,
    ReviewSession,
    open_session,
)

__all__ = [
    "ApprovalFilter",
    "DatasetReconciler",
    "DatasetStats",
    "DeleteConfirmation",
    "ExportArchive",
    "InsertPosition",
    "ReviewSession",
    "SortDirection",
    "collection_stats",
    "default_dataset_name",
    "filter_records",
    "open_session",
    "sort_records",
]
