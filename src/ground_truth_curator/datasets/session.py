"""Review session: the in-memory collection a curator works on.

The session owns the ordered record list and applies the pure transformations
from ``datasets.collection``. Each mutation reports whether the collection
changed; a changed collection is auto-saved through the reconciler once a
username (and, on named stores, a dataset name) is known.
"""

import logging
import time
from datetime import date
from pathlib import Path
from typing import Any, Callable, Mapping

from pydantic import BaseModel

from ground_truth_curator import codec
from ground_truth_curator.config import Settings, settings as default_settings
from ground_truth_curator.datasets import collection
from ground_truth_curator.datasets.collection import (
    ApprovalFilter,
    DatasetStats,
    InsertPosition,
    SortDirection,
)
from ground_truth_curator.datasets.reconciler import DatasetReconciler
from ground_truth_curator.exceptions import (
    DatasetNameConflictError,
    ImportBlockedError,
    RecordValidationError,
)
from ground_truth_curator.records.envelope import DatasetEnvelope
from ground_truth_curator.records.models import (
    APPROVAL_FIELDS,
    Record,
    RecordKind,
    approve,
    assign_identity,
    record_model,
    revoke_approval,
    utc_now_iso,
    validate_record,
)
from ground_truth_curator.stores.base import NamedDatasetStore
from ground_truth_curator.stores.factory import build_store, default_slot

logger = logging.getLogger(__name__)


class DeleteConfirmation:
    """Two-step delete: the first request arms, a second one within the window confirms.

    A request for a different identity, or one after the window has expired,
    re-arms instead of confirming.
    """

    def __init__(self, window_seconds: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self.clock = clock
        self._armed: str | None = None
        self._deadline = 0.0

    def request(self, identity: str) -> bool:
        """Register a delete click.

        Returns:
            True if this click confirms the delete
        """
        now = self.clock()
        if self._armed == identity and now <= self._deadline:
            self.reset()
            return True
        self._armed = identity
        self._deadline = now + self.window_seconds
        return False

    def is_armed(self, identity: str) -> bool:
        return self._armed == identity and self.clock() <= self._deadline

    def reset(self) -> None:
        self._armed = None
        self._deadline = 0.0


class ExportArchive:
    """Keeps a server-side copy of every export."""

    def __init__(self, exports_dir: str | Path):
        self.exports_dir = Path(exports_dir)

    def save(self, filename: str, content: str) -> Path:
        self.exports_dir.mkdir(parents=True, exist_ok=True)
        path = self.exports_dir / filename
        path.write_text(content, encoding="utf-8")
        logger.info(f"Archived export to {path}")
        return path


def export_label(kind: RecordKind | str, cfg: Settings | None = None) -> str:
    """Filename label for exports of a record kind."""
    cfg = cfg or default_settings
    if RecordKind(kind) == RecordKind.ENTRY:
        return cfg.ENTRY_EXPORT_LABEL
    return cfg.DOCUMENT_EXPORT_LABEL


class ReviewSession:
    """Ordered in-memory collection bound to one persisted dataset."""

    def __init__(
        self,
        kind: RecordKind | str,
        reconciler: DatasetReconciler,
        username: str | None = None,
        dataset_name: str | None = None,
        delete_window: float = 3.0,
        label: str | None = None,
        archive: ExportArchive | None = None,
    ):
        """Initialize an empty session.

        Args:
            kind: Record kind being curated
            reconciler: Persists the collection
            username: Curator name used for ownership and approvals
            dataset_name: Name of the dataset (required for saving on named stores)
            delete_window: Seconds a delete request stays armed
            label: Export filename label (defaults from settings)
            archive: Optional server-side archive for exports
        """
        self.kind = RecordKind(kind)
        self.reconciler = reconciler
        self.username = username
        self.dataset_name = dataset_name
        self.delete_confirmation = DeleteConfirmation(delete_window)
        self.label = label or export_label(self.kind)
        self.archive = archive
        self.records: list[Record] = []
        self._persisted = False

    @property
    def named_store(self) -> NamedDatasetStore | None:
        """The backing store when it manages named datasets."""
        store = self.reconciler.store
        return store if isinstance(store, NamedDatasetStore) else None

    @property
    def is_persisted(self) -> bool:
        return self._persisted

    def __len__(self) -> int:
        return len(self.records)

    def get(self, identity: str) -> Record | None:
        index = collection.find_index(self.records, identity)
        return None if index is None else self.records[index]

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _use_envelope(self, envelope: DatasetEnvelope) -> None:
        self.records = list(envelope.records)
        self.dataset_name = envelope.name or self.dataset_name
        self.username = envelope.username or self.username
        # A blank tombstone counts as nothing persisted
        self._persisted = bool(envelope.username or envelope.records)

    def load(self, name: str | None = None) -> bool:
        """Resume the persisted dataset.

        On named stores this opens ``name`` (or the last active dataset) and
        restores the stored username.

        Returns:
            True if a dataset was loaded
        """
        named = self.named_store
        if named is not None:
            self.username = named.get_username() or self.username
            name = name or named.get_active_name()
            if not name:
                return False
            self.reconciler.slot = name

        envelope = self.reconciler.load()
        if envelope is None:
            return False

        self._use_envelope(envelope)
        if named is not None:
            self.dataset_name = name
            named.set_active_name(name)
        self.delete_confirmation.reset()
        logger.info(f"Loaded dataset '{self.dataset_name}' with {len(self.records)} records")
        return self._persisted

    def _ready_to_save(self) -> bool:
        if not self.records or not self.username:
            return False
        if self.named_store is not None and not self.dataset_name:
            return False
        return True

    def save_if_ready(self) -> DatasetEnvelope | None:
        """Auto-save after a mutation.

        Suppressed (not queued) until a username is set, the collection is
        non-empty and, on named stores, the dataset has a name.
        """
        if not self._ready_to_save():
            return None
        if not self._persisted:
            return self._create()
        return self.reconciler.update(self.records)

    def _create(self) -> DatasetEnvelope:
        if self.named_store is not None and self.dataset_name:
            self.reconciler.slot = self.dataset_name
        envelope = self.reconciler.create_or_replace(
            self.records,
            self.username or self.reconciler.default_username,
            name=self.dataset_name,
        )
        self.dataset_name = envelope.name
        self._persisted = True
        return envelope

    def _changed(self, dirty: bool) -> bool:
        if dirty:
            self.save_if_ready()
        return dirty

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _validated(self, candidate: Mapping[str, Any] | BaseModel) -> None:
        error = validate_record(self.kind, candidate)
        if error:
            raise RecordValidationError(error)

    def add(
        self,
        candidate: Mapping[str, Any] | BaseModel,
        position: InsertPosition | str | None = None,
        target_index: int | None = None,
    ) -> Record:
        """Validate and add a new record.

        Entries are appended. Documents go before or after ``target_index``
        (after the last record when no target is given).

        Raises:
            RecordValidationError: If a required field is missing
        """
        self._validated(candidate)
        record = assign_identity(self.kind, candidate)

        if self.kind == RecordKind.ENTRY:
            self.records = collection.append_record(self.records, record)
        else:
            self.records = collection.insert_record(
                self.records, record, position or InsertPosition.AFTER, target_index
            )
        logger.debug(f"Added record {record.identity}")
        self._changed(True)
        return record

    def edit(self, identity: str, replacement: Mapping[str, Any] | BaseModel) -> bool:
        """Replace the record with ``identity``, keeping its position and identity.

        Approval fields are carried over from the existing record.

        Raises:
            RecordValidationError: If a required field is missing
        """
        existing = self.get(identity)
        if existing is None:
            return False
        self._validated(replacement)

        model = record_model(self.kind)
        data = (
            replacement.model_dump(exclude_unset=True)
            if isinstance(replacement, BaseModel)
            else dict(replacement)
        )
        data[model.IDENTITY_FIELD] = identity
        for field in APPROVAL_FIELDS:
            data[field] = getattr(existing, field)

        self.records, dirty = collection.replace_record(
            self.records, identity, model.model_validate(data)
        )
        return self._changed(dirty)

    def delete(self, identity: str) -> bool:
        """Remove a record unconditionally."""
        self.records, dirty = collection.remove_record(self.records, identity)
        return self._changed(dirty)

    def request_delete(self, identity: str) -> bool:
        """Two-click delete used by the UI.

        Returns:
            True if this request confirmed and performed the delete
        """
        if not self.delete_confirmation.request(identity):
            return False
        return self.delete(identity)

    def approve(self, identity: str, approver: str | None = None) -> bool:
        """Approve a record as ``approver`` (the session user by default)."""
        approver = approver or self.username or self.reconciler.default_username
        now = utc_now_iso()
        self.records, dirty = collection.map_record(
            self.records, identity, lambda r: approve(r, approver, now)
        )
        return self._changed(dirty)

    def revoke(self, identity: str) -> bool:
        """Clear the approval of a record."""
        self.records, dirty = collection.map_record(self.records, identity, revoke_approval)
        return self._changed(dirty)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def view(
        self,
        term: str = "",
        approval_filter: ApprovalFilter | str = ApprovalFilter.ALL,
        sort: SortDirection | str = SortDirection.NONE,
    ) -> list[Record]:
        """Filtered and optionally sorted view. The collection is not modified."""
        return collection.sort_records(
            collection.filter_records(self.records, term, approval_filter), sort
        )

    def stats(self) -> DatasetStats:
        return collection.collection_stats(self.records)

    # -------------------------------------------------------------------------
    # Import / export
    # -------------------------------------------------------------------------

    def import_text(
        self, text: str, fmt: codec.ExportFormat | str, username: str | None = None
    ) -> int:
        """Replace an empty collection with the decoded file content.

        Returns:
            Number of imported records

        Raises:
            ImportBlockedError: If the collection already holds records
            DecodeError: If the file is malformed (nothing is imported)
        """
        if self.records:
            raise ImportBlockedError(len(self.records))
        return self.import_records(codec.decode(text, self.kind, fmt), username)

    def import_records(self, records: list[Record], username: str | None = None) -> int:
        """Replace an empty collection with already decoded records.

        Raises:
            ImportBlockedError: If the collection already holds records
        """
        if self.records:
            raise ImportBlockedError(len(self.records))
        if username:
            self.set_username(username)

        self.records = records
        self._persisted = False
        named = self.named_store
        if named is not None:
            self.dataset_name = named.generate_unique_name("Imported Dataset")
            self.reconciler.slot = self.dataset_name
        else:
            self.dataset_name = None

        if self.username:
            self._create()
        logger.info(f"Imported {len(records)} {self.kind.value} records")
        return len(records)

    def export(
        self, fmt: codec.ExportFormat | str, today: date | None = None
    ) -> tuple[str, str]:
        """Encode the collection for download.

        Returns:
            (filename, content)

        Raises:
            UnsupportedFormatError: If the format is unavailable for this kind
        """
        content = codec.encode(self.records, self.kind, fmt)
        filename = codec.export_filename(self.kind, fmt, self.label, today)
        if self.archive is not None:
            self.archive.save(filename, content)
        return filename, content

    # -------------------------------------------------------------------------
    # Dataset management
    # -------------------------------------------------------------------------

    def set_username(self, username: str) -> str:
        """Set the curator name, saving pending work under it.

        Raises:
            ValueError: If the name is blank
        """
        username = (username or "").strip()
        if not username:
            raise ValueError("Username is required")
        self.username = username
        if self.named_store is not None:
            self.named_store.set_username(username)
        self.save_if_ready()
        return username

    def clear(self) -> None:
        """Delete the persisted dataset and empty the collection."""
        self.reconciler.clear()
        self.records = []
        self._persisted = False
        if self.named_store is not None:
            self.dataset_name = None
        self.delete_confirmation.reset()

    def start_fresh(self) -> None:
        """Drop the working collection without deleting anything stored."""
        if self.named_store is not None:
            self.named_store.clear_active()
        self.records = []
        self.dataset_name = None
        self._persisted = False
        self.delete_confirmation.reset()

    def has_unsaved_work(self) -> bool:
        """Whether a previous session left records that can be resumed."""
        named = self.named_store
        if named is not None:
            name = named.get_active_name()
            if not name:
                return False
            slot, self.reconciler.slot = self.reconciler.slot, name
            try:
                envelope = self.reconciler.load()
            finally:
                self.reconciler.slot = slot
        else:
            envelope = self.reconciler.load()
        return envelope is not None and envelope.record_count > 0

    def save(self, name: str | None = None) -> DatasetEnvelope:
        """Explicitly save the collection under ``name`` (or the current name).

        Raises:
            ValueError: If no dataset name is available
            DatasetNameConflictError: If ``name`` belongs to another dataset
        """
        name = (name or self.dataset_name or "").strip()
        if not name:
            raise ValueError("Please enter a dataset name")

        named = self.named_store
        if named is not None and (name != self.reconciler.slot or not self._persisted):
            if named.exists(name):
                raise DatasetNameConflictError(name)
            self.reconciler.slot = name
            self._persisted = False

        if self._persisted and name == self.dataset_name:
            envelope = self.reconciler.update(self.records)
        else:
            self.dataset_name = name
            envelope = self._create()
        if named is not None:
            named.set_active_name(name)
        return envelope

    def rename(self, new_name: str) -> bool:
        """Rename the dataset.

        Renames in storage when the dataset is persisted, otherwise only the
        in-memory name changes.

        Returns:
            False for a blank or unchanged name

        Raises:
            DatasetNameConflictError: If another dataset already has the name
        """
        new_name = (new_name or "").strip()
        if not new_name or new_name == self.dataset_name:
            return False

        named = self.named_store
        if named is not None:
            if named.exists(new_name):
                raise DatasetNameConflictError(new_name)
            if self._persisted and self.dataset_name:
                if not named.rename(self.dataset_name, new_name):
                    raise DatasetNameConflictError(new_name)
            self.reconciler.slot = new_name
        elif self._persisted:
            self.reconciler.rename(new_name)

        logger.info(f"Renamed dataset '{self.dataset_name}' to '{new_name}'")
        self.dataset_name = new_name
        return True


def open_session(
    kind: RecordKind | str,
    cfg: Settings | None = None,
    resume: bool = True,
) -> ReviewSession:
    """Build a session on the configured store, resuming the stored dataset.

    Args:
        kind: Record kind to curate
        cfg: Settings to use (defaults to the global settings)
        resume: Load the persisted (or last active) dataset
    """
    cfg = cfg or default_settings
    kind = RecordKind(kind)
    reconciler = DatasetReconciler(
        build_store(kind, cfg),
        kind,
        slot=default_slot(kind, cfg),
        default_username=cfg.DEFAULT_USERNAME,
    )
    session = ReviewSession(
        kind,
        reconciler,
        delete_window=cfg.DELETE_CONFIRM_SECONDS,
        label=export_label(kind, cfg),
        archive=ExportArchive(cfg.EXPORTS_DIR),
    )
    if resume:
        session.load()
    return session
