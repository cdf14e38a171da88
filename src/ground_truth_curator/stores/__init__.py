"""Storage backends for dataset envelopes."""

from ground_truth_curator.stores.base import DatasetInfo, DatasetStore, NamedDatasetStore
from ground_truth_curator.stores.factory import (
    build_store,
    default_slot,
    get_available_backends,
    register_backend,
)
from ground_truth_curator.stores.file_store import FileDatasetStore
from ground_truth_curator.stores.local_store import LocalDatasetStore

__all__ = [
    # ABCs
    "DatasetInfo",
    "DatasetStore",
    "NamedDatasetStore",
    # Backends
    "FileDatasetStore",
    "LocalDatasetStore",
    # Factory
    "build_store",
    "default_slot",
    "get_available_backends",
    "register_backend",
]
