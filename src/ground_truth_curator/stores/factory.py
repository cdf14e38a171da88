"""Dataset store factory with registry pattern."""

import logging
from typing import Callable

from ground_truth_curator.config import Settings, settings as default_settings
from ground_truth_curator.records.models import RecordKind
from ground_truth_curator.stores.base import DatasetStore

logger = logging.getLogger(__name__)

# Backend registry: maps backend names to factory functions
_BACKEND_REGISTRY: dict[str, Callable[[RecordKind, Settings], DatasetStore]] = {}


def register_backend(
    name: str,
) -> Callable[[Callable[[RecordKind, Settings], DatasetStore]], Callable[[RecordKind, Settings], DatasetStore]]:
    """Decorator to register a store backend factory.

    Usage:
        @register_backend("my_backend")
        def _create_my_backend(kind, cfg):
            return MyStore(...)
    """

    def decorator(
        factory: Callable[[RecordKind, Settings], DatasetStore],
    ) -> Callable[[RecordKind, Settings], DatasetStore]:
        _BACKEND_REGISTRY[name.lower()] = factory
        logger.debug(f"Registered store backend: {name}")
        return factory

    return decorator


def get_available_backends() -> list[str]:
    """Get list of registered backend names."""
    return list(_BACKEND_REGISTRY.keys())


def build_store(kind: RecordKind | str, cfg: Settings | None = None) -> DatasetStore:
    """Create the configured store for a record kind.

    Args:
        kind: Record kind the store will hold
        cfg: Settings to use (defaults to the global settings)

    Returns:
        Store instance for ``cfg.STORAGE_BACKEND``

    Raises:
        ValueError: If the backend is not registered
    """
    cfg = cfg or default_settings
    name = cfg.storage_backend
    if name not in _BACKEND_REGISTRY:
        available = ", ".join(get_available_backends())
        raise ValueError(f"Unknown storage backend '{name}'. Available: {available}")
    return _BACKEND_REGISTRY[name](RecordKind(kind), cfg)


def default_slot(kind: RecordKind | str, cfg: Settings | None = None) -> str:
    """Well-known slot of a record kind on single-dataset backends."""
    cfg = cfg or default_settings
    return cfg.ENTRY_SLOT if RecordKind(kind) == RecordKind.ENTRY else cfg.DOCUMENT_SLOT


# =============================================================================
# Built-in backends
# =============================================================================


@register_backend("file")
def _create_file_store(kind: RecordKind, cfg: Settings) -> DatasetStore:
    from ground_truth_curator.stores.file_store import FileDatasetStore

    return FileDatasetStore(cfg.DATA_DIR)


@register_backend("gcs")
def _create_gcs_store(kind: RecordKind, cfg: Settings) -> DatasetStore:
    from ground_truth_curator.stores.gcs_store import GCSDatasetStore

    return GCSDatasetStore(
        cfg.GCS_BUCKET_NAME,
        prefix=cfg.GCS_PREFIX,
        project=cfg.GCP_PROJECT_ID,
        kind=kind,
    )


@register_backend("local")
def _create_local_store(kind: RecordKind, cfg: Settings) -> DatasetStore:
    from ground_truth_curator.stores.local_store import LocalDatasetStore

    return LocalDatasetStore(cfg.LOCAL_STORE_URL, namespace=kind.value)
