"""Dataset storage in a Google Cloud Storage bucket."""

import logging

from google.api_core import exceptions as gcs_exceptions
from google.cloud import storage

from ground_truth_curator.exceptions import (
    DatasetNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from ground_truth_curator.records.envelope import DatasetEnvelope
from ground_truth_curator.records.models import RecordKind, utc_now_iso
from ground_truth_curator.stores.base import DatasetStore

logger = logging.getLogger(__name__)


class GCSDatasetStore(DatasetStore):
    """One JSON object per slot in a GCS bucket.

    Uploads replace the whole object, so each write is atomic. Deleting a
    slot writes an empty tombstone envelope instead of removing the object.
    """

    backend_name = "gcs"

    def __init__(
        self,
        bucket_name: str,
        client: storage.Client | None = None,
        prefix: str = "",
        project: str | None = None,
        kind: RecordKind | str = RecordKind.ENTRY,
    ):
        """Initialize the store.

        Args:
            bucket_name: Bucket holding the datasets
            client: Storage client (created lazily with default credentials if None)
            prefix: Object name prefix, e.g. "curation/"
            project: GCP project for the lazily created client
            kind: Record kind written into tombstone envelopes
        """
        self.bucket_name = bucket_name
        self.prefix = prefix
        self.project = project or None
        self._client = client
        self.kind = RecordKind(kind)

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client(project=self.project)
        return self._client

    def object_name(self, slot: str) -> str:
        return f"{self.prefix}{slot}.json"

    def _blob(self, slot: str) -> storage.Blob:
        return self.client.bucket(self.bucket_name).blob(self.object_name(slot))

    def exists(self, slot: str) -> bool:
        try:
            return self._blob(slot).exists()
        except gcs_exceptions.GoogleAPIError as e:
            logger.warning(f"Could not check gs://{self.bucket_name}/{self.object_name(slot)}: {e}")
            return False

    def read(self, slot: str) -> DatasetEnvelope:
        try:
            body = self._blob(slot).download_as_text()
        except gcs_exceptions.NotFound:
            raise DatasetNotFoundError(slot) from None
        except gcs_exceptions.GoogleAPIError as e:
            logger.error(f"Error reading dataset from GCS: {e}")
            raise StoreReadError(f"Failed to read dataset: {e}", slot, self.backend_name) from e

        if not body:
            raise StoreReadError("Empty response from GCS", slot, self.backend_name)
        return self.parse_envelope(slot, body)

    def write(self, slot: str, envelope: DatasetEnvelope) -> None:
        try:
            self._blob(slot).upload_from_string(
                envelope.to_json(), content_type="application/json"
            )
        except gcs_exceptions.GoogleAPIError as e:
            logger.error(f"Error writing dataset to GCS: {e}")
            raise StoreWriteError(f"Failed to write dataset: {e}", slot, self.backend_name) from e
        logger.debug(
            f"Uploaded {envelope.record_count} records to "
            f"gs://{self.bucket_name}/{self.object_name(slot)}"
        )

    def delete(self, slot: str) -> None:
        # Tombstone: the slot stays present with no records and no owner
        self.write(slot, DatasetEnvelope.empty(self.kind, utc_now_iso()))
        logger.info(f"Reset gs://{self.bucket_name}/{self.object_name(slot)} to an empty dataset")
