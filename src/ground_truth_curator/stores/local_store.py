"""Local named-dataset storage in a namespaced key-value table.

Layout per namespace (one namespace per record kind):

- ``{namespace}:datasets`` maps dataset name to the envelope JSON
- ``{namespace}:settings`` holds the active dataset pointer and the username
"""

import logging
from datetime import datetime
from pathlib import Path

from sqlalchemy import DateTime, String, Text, create_engine, delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from ground_truth_curator.exceptions import (
    DatasetNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from ground_truth_curator.records.envelope import DatasetEnvelope
from ground_truth_curator.records.models import utc_now_iso
from ground_truth_curator.stores.base import DatasetInfo, NamedDatasetStore

logger = logging.getLogger(__name__)

ACTIVE_DATASET_KEY = "current_dataset_name"
USERNAME_KEY = "username"


class Base(DeclarativeBase):
    """Base class for local store models."""

    pass


class KeyValueEntry(Base):
    """One value in a namespaced key-value table."""

    __tablename__ = "kv_entries"

    namespace: Mapped[str] = mapped_column(String(128), primary_key=True)
    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry({self.namespace}/{self.key})>"


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


class LocalDatasetStore(NamedDatasetStore):
    """Any number of named datasets plus an active pointer and a username."""

    backend_name = "local"

    def __init__(self, database_url: str, namespace: str = "entry"):
        """Initialize the store and create its table if needed.

        Args:
            database_url: SQLAlchemy URL, e.g. "sqlite:///./data/curator.db"
            namespace: Isolates one record kind's datasets from another's
        """
        _ensure_sqlite_dir(database_url)
        self.engine = create_engine(database_url)
        Base.metadata.create_all(self.engine)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.namespace = namespace

    @property
    def datasets_ns(self) -> str:
        return f"{self.namespace}:datasets"

    @property
    def settings_ns(self) -> str:
        return f"{self.namespace}:settings"

    # -------------------------------------------------------------------------
    # Key-value primitives
    # -------------------------------------------------------------------------

    def _get(self, session: Session, namespace: str, key: str) -> KeyValueEntry | None:
        return session.get(KeyValueEntry, (namespace, key))

    def _put(self, session: Session, namespace: str, key: str, value: str) -> None:
        entry = self._get(session, namespace, key)
        if entry is None:
            session.add(KeyValueEntry(namespace=namespace, key=key, value=value))
        else:
            entry.value = value

    def _get_setting(self, key: str) -> str | None:
        try:
            with self._sessions() as session:
                entry = self._get(session, self.settings_ns, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            logger.warning(f"Could not read setting '{key}': {e}")
            return None

    def _put_setting(self, key: str, value: str | None) -> None:
        try:
            with self._sessions() as session, session.begin():
                if value is None:
                    session.execute(
                        delete(KeyValueEntry).where(
                            KeyValueEntry.namespace == self.settings_ns,
                            KeyValueEntry.key == key,
                        )
                    )
                else:
                    self._put(session, self.settings_ns, key, value)
        except SQLAlchemyError as e:
            logger.error(f"Could not write setting '{key}': {e}")
            raise StoreWriteError(str(e), key, self.backend_name) from e

    # -------------------------------------------------------------------------
    # DatasetStore
    # -------------------------------------------------------------------------

    def exists(self, slot: str) -> bool:
        try:
            with self._sessions() as session:
                return self._get(session, self.datasets_ns, slot) is not None
        except SQLAlchemyError as e:
            logger.warning(f"Could not check dataset '{slot}': {e}")
            return False

    def read(self, slot: str) -> DatasetEnvelope:
        try:
            with self._sessions() as session:
                entry = self._get(session, self.datasets_ns, slot)
                content = entry.value if entry else None
        except SQLAlchemyError as e:
            logger.error(f"Error reading dataset '{slot}': {e}")
            raise StoreReadError(str(e), slot, self.backend_name) from e

        if content is None:
            raise DatasetNotFoundError(slot)
        return self.parse_envelope(slot, content)

    def write(self, slot: str, envelope: DatasetEnvelope) -> None:
        try:
            with self._sessions() as session, session.begin():
                self._put(session, self.datasets_ns, slot, envelope.to_json())
                self._put(session, self.settings_ns, ACTIVE_DATASET_KEY, slot)
        except SQLAlchemyError as e:
            logger.error(f"Error saving dataset '{slot}': {e}")
            raise StoreWriteError(
                f"Failed to save dataset. Storage might be full. ({e})", slot, self.backend_name
            ) from e
        logger.debug(f"Saved dataset '{slot}' with {envelope.record_count} records")

    def delete(self, slot: str) -> None:
        try:
            with self._sessions() as session, session.begin():
                session.execute(
                    delete(KeyValueEntry).where(
                        KeyValueEntry.namespace == self.datasets_ns,
                        KeyValueEntry.key == slot,
                    )
                )
                active = self._get(session, self.settings_ns, ACTIVE_DATASET_KEY)
                if active is not None and active.value == slot:
                    session.delete(active)
        except SQLAlchemyError as e:
            logger.error(f"Error deleting dataset '{slot}': {e}")
            raise StoreWriteError(str(e), slot, self.backend_name) from e
        logger.info(f"Deleted dataset '{slot}'")

    # -------------------------------------------------------------------------
    # NamedDatasetStore
    # -------------------------------------------------------------------------

    def list_datasets(self) -> list[DatasetInfo]:
        try:
            with self._sessions() as session:
                rows = session.execute(
                    select(KeyValueEntry.key, KeyValueEntry.value)
                    .where(KeyValueEntry.namespace == self.datasets_ns)
                    .order_by(KeyValueEntry.key)
                ).all()
        except SQLAlchemyError as e:
            logger.warning(f"Could not list datasets: {e}")
            return []

        infos = []
        for name, content in rows:
            try:
                envelope = self.parse_envelope(name, content)
            except StoreReadError:
                continue
            infos.append(
                DatasetInfo(
                    name=name,
                    last_modified=envelope.updated_at,
                    record_count=envelope.record_count,
                )
            )
        return infos

    def rename(self, old_name: str, new_name: str) -> bool:
        try:
            with self._sessions() as session, session.begin():
                if self._get(session, self.datasets_ns, new_name) is not None:
                    return False
                entry = self._get(session, self.datasets_ns, old_name)
                if entry is None:
                    return False

                envelope = self.parse_envelope(old_name, entry.value)
                envelope = envelope.model_copy(update={"name": new_name, "updated_at": utc_now_iso()})
                session.delete(entry)
                session.add(
                    KeyValueEntry(
                        namespace=self.datasets_ns, key=new_name, value=envelope.to_json()
                    )
                )

                active = self._get(session, self.settings_ns, ACTIVE_DATASET_KEY)
                if active is not None and active.value == old_name:
                    active.value = new_name
        except (SQLAlchemyError, StoreReadError) as e:
            logger.error(f"Error renaming dataset '{old_name}': {e}")
            return False

        logger.info(f"Renamed dataset '{old_name}' to '{new_name}'")
        return True

    def get_active_name(self) -> str | None:
        return self._get_setting(ACTIVE_DATASET_KEY)

    def set_active_name(self, name: str) -> None:
        self._put_setting(ACTIVE_DATASET_KEY, name)

    def clear_active(self) -> None:
        self._put_setting(ACTIVE_DATASET_KEY, None)

    def get_username(self) -> str | None:
        return self._get_setting(USERNAME_KEY)

    def set_username(self, username: str) -> None:
        self._put_setting(USERNAME_KEY, username)
