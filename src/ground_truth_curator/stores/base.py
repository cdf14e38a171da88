"""Abstract base classes for dataset storage."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pydantic import ValidationError

from ground_truth_curator.exceptions import StoreReadError
from ground_truth_curator.records.envelope import DatasetEnvelope

logger = logging.getLogger(__name__)


@dataclass
class DatasetInfo:
    """Summary of a named dataset for selection lists."""

    name: str
    last_modified: str
    record_count: int


class DatasetStore(ABC):
    """Named-blob persistence for dataset envelopes.

    Every backend follows the same contract:
    - ``write`` replaces the whole envelope (no merge)
    - ``read`` of an absent slot raises DatasetNotFoundError, which is distinct
      from a present envelope with no records
    - ``delete`` of an absent slot is not an error
    """

    backend_name: str = "unknown"

    @abstractmethod
    def exists(self, slot: str) -> bool:
        """Check whether an envelope is stored in the slot."""
        ...

    @abstractmethod
    def read(self, slot: str) -> DatasetEnvelope:
        """Read the envelope in the slot.

        Raises:
            DatasetNotFoundError: If nothing is stored in the slot
            StoreReadError: If the backend fails or the content is corrupt
        """
        ...

    @abstractmethod
    def write(self, slot: str, envelope: DatasetEnvelope) -> None:
        """Replace the envelope in the slot.

        Raises:
            StoreWriteError: If the backend fails
        """
        ...

    @abstractmethod
    def delete(self, slot: str) -> None:
        """Remove the envelope in the slot, if any."""
        ...

    def parse_envelope(self, slot: str, content: str) -> DatasetEnvelope:
        """Parse stored JSON, reporting corrupt content as a read failure."""
        try:
            return DatasetEnvelope.model_validate_json(content)
        except ValidationError as e:
            logger.error(f"Corrupt dataset in slot '{slot}' ({self.backend_name}): {e}")
            raise StoreReadError(f"Corrupt dataset: {e}", slot, self.backend_name) from e


class NamedDatasetStore(DatasetStore):
    """A store holding any number of named datasets.

    Besides the slot operations it tracks which dataset is active and the
    username of whoever is curating.
    """

    @abstractmethod
    def list_datasets(self) -> list[DatasetInfo]:
        """List stored datasets."""
        ...

    @abstractmethod
    def rename(self, old_name: str, new_name: str) -> bool:
        """Rename a dataset.

        Returns:
            False if ``new_name`` is taken or ``old_name`` does not exist
        """
        ...

    @abstractmethod
    def get_active_name(self) -> str | None:
        """Name of the dataset being worked on, if any."""
        ...

    @abstractmethod
    def set_active_name(self, name: str) -> None:
        """Mark a dataset as the one being worked on."""
        ...

    @abstractmethod
    def clear_active(self) -> None:
        """Forget the active dataset without deleting it."""
        ...

    @abstractmethod
    def get_username(self) -> str | None:
        """Stored curator username."""
        ...

    @abstractmethod
    def set_username(self, username: str) -> None:
        """Persist the curator username."""
        ...

    def generate_unique_name(self, base_name: str = "Untitled Dataset") -> str:
        """Return ``base_name`` or the first free ``base_name (N)``."""
        existing = {info.name for info in self.list_datasets()}
        if base_name not in existing:
            return base_name

        counter = 1
        while f"{base_name} ({counter})" in existing:
            counter += 1
        return f"{base_name} ({counter})"
