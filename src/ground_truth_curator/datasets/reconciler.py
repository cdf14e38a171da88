"""Keeps the persisted copy of a dataset in step with the working collection."""

import logging
from datetime import date
from typing import Callable

from ground_truth_curator.exceptions import DatasetNotFoundError, StoreReadError
from ground_truth_curator.records.envelope import DatasetEnvelope
from ground_truth_curator.records.models import Record, RecordKind, utc_now_iso
from ground_truth_curator.stores.base import DatasetStore, NamedDatasetStore

logger = logging.getLogger(__name__)

DEFAULT_NAME_PREFIX = {
    RecordKind.ENTRY: "Dataset",
    RecordKind.DOCUMENT: "Document Dataset",
}


def default_dataset_name(kind: RecordKind | str, today: date | None = None) -> str:
    """Date-stamped name given to a dataset at creation."""
    stamp = (today or date.today()).isoformat()
    return f"{DEFAULT_NAME_PREFIX[RecordKind(kind)]} {stamp}"


class DatasetReconciler:
    """Create, load, update and clear the envelope stored in one slot.

    A slot is either absent (nothing persisted) or present (an envelope,
    possibly with no records). Store write failures propagate to the caller
    unchanged; nothing is retried.
    """

    def __init__(
        self,
        store: DatasetStore,
        kind: RecordKind | str,
        slot: str,
        default_username: str = "User",
        clock: Callable[[], str] = utc_now_iso,
    ):
        """Initialize the reconciler.

        Args:
            store: Backend holding the envelope
            kind: Record kind of the dataset
            slot: Slot name (a fixed slot, or a dataset name on named stores)
            default_username: Owner used when an update finds no dataset
            clock: Returns the current timestamp as an ISO string
        """
        self.store = store
        self.kind = RecordKind(kind)
        self.slot = slot
        self.default_username = default_username
        self.clock = clock

    def load(self) -> DatasetEnvelope | None:
        """Load the persisted envelope.

        Returns:
            The envelope, or None when the slot is absent or unreadable
        """
        try:
            if not self.store.exists(self.slot):
                return None
            return self.store.read(self.slot)
        except DatasetNotFoundError:
            return None
        except StoreReadError as e:
            logger.warning(f"Error loading dataset '{self.slot}', treating as empty: {e}")
            return None

    def create_or_replace(
        self,
        records: list[Record],
        username: str,
        name: str | None = None,
    ) -> DatasetEnvelope:
        """Write a brand-new envelope, replacing whatever the slot held.

        This is the only operation that sets ``created_at``.
        """
        now = self.clock()
        envelope = DatasetEnvelope(
            name=name or default_dataset_name(self.kind, date.fromisoformat(now[:10])),
            username=username,
            created_at=now,
            updated_at=now,
            kind=self.kind,
            records=list(records),
        )
        self.store.write(self.slot, envelope)
        logger.info(
            f"Created dataset '{envelope.name}' in slot '{self.slot}' "
            f"with {envelope.record_count} records"
        )
        return envelope

    def update(self, records: list[Record]) -> DatasetEnvelope:
        """Replace the records of the existing envelope.

        Keeps name, username and ``created_at``; bumps ``updated_at``. If the
        slot has disappeared (e.g. cleared out-of-band) a new envelope owned
        by ``default_username`` is created instead. On named stores the slot
        is the dataset name, so the new envelope takes that name.
        """
        try:
            current = self.store.read(self.slot)
        except DatasetNotFoundError:
            logger.warning(
                f"Dataset slot '{self.slot}' missing on update; recreating it "
                f"for '{self.default_username}'"
            )
            name = self.slot if isinstance(self.store, NamedDatasetStore) else None
            return self.create_or_replace(records, self.default_username, name=name)

        envelope = current.model_copy(
            update={"records": list(records), "updated_at": self.clock()}
        )
        self.store.write(self.slot, envelope)
        logger.debug(f"Updated dataset '{self.slot}' ({envelope.record_count} records)")
        return envelope

    def rename(self, name: str) -> DatasetEnvelope:
        """Change the name stored in the envelope, bumping ``updated_at``.

        Raises:
            DatasetNotFoundError: If the slot is absent
        """
        current = self.store.read(self.slot)
        envelope = current.model_copy(update={"name": name, "updated_at": self.clock()})
        self.store.write(self.slot, envelope)
        logger.info(f"Renamed dataset in slot '{self.slot}' to '{name}'")
        return envelope

    def clear(self) -> None:
        """Delete the persisted envelope. Succeeds for an absent slot."""
        self.store.delete(self.slot)
        logger.info(f"Cleared dataset slot '{self.slot}'")

    def get_username(self) -> str | None:
        """Owner of the persisted envelope, if any."""
        envelope = self.load()
        return envelope.username if envelope else None
