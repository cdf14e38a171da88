"""Dataset storage as JSON files on the local filesystem."""

import logging
import os
import tempfile
from pathlib import Path

from ground_truth_curator.exceptions import (
    DatasetNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from ground_truth_curator.records.envelope import DatasetEnvelope
from ground_truth_curator.stores.base import DatasetStore

logger = logging.getLogger(__name__)


class FileDatasetStore(DatasetStore):
    """One pretty-printed JSON file per slot under ``data_dir``.

    Writes go to a temporary file that replaces the target, so a failed
    write never leaves a half-written dataset behind.
    """

    backend_name = "file"

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    def _path(self, slot: str) -> Path:
        return self.data_dir / f"{slot}.json"

    def exists(self, slot: str) -> bool:
        return self._path(slot).is_file()

    def read(self, slot: str) -> DatasetEnvelope:
        path = self._path(slot)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise DatasetNotFoundError(slot) from None
        except OSError as e:
            logger.error(f"Error reading {path}: {e}")
            raise StoreReadError(str(e), slot, self.backend_name) from e
        return self.parse_envelope(slot, content)

    def write(self, slot: str, envelope: DatasetEnvelope) -> None:
        path = self._path(slot)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{slot}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(envelope.to_json())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            raise StoreWriteError(str(e), slot, self.backend_name) from e
        logger.debug(f"Wrote {envelope.record_count} records to {path}")

    def delete(self, slot: str) -> None:
        path = self._path(slot)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error deleting {path}: {e}")
            raise StoreWriteError(str(e), slot, self.backend_name) from e
        logger.info(f"Deleted dataset file {path}")
