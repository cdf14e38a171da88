"""Curation errors, surfaced verbatim by the API, web UI and CLI."""


class CuratorError(Exception):
    """Base exception for curation operations."""

    pass


class RecordValidationError(CuratorError):
    """A candidate record is missing a required field."""

    pass


class DecodeError(CuratorError):
    """Input file could not be decoded. The whole import is rejected."""

    pass


class UnsupportedFormatError(CuratorError):
    """The export/import format is not available for this record kind."""

    def __init__(self, kind: str, fmt: str):
        self.kind = kind
        self.fmt = fmt
        super().__init__(f"Format '{fmt}' is not supported for {kind} records")


class DatasetNotFoundError(CuratorError):
    """No envelope is persisted in the requested slot."""

    def __init__(self, slot: str):
        self.slot = slot
        super().__init__(f"No dataset stored in slot '{slot}'")


class StoreError(CuratorError):
    """Backend I/O failure."""

    def __init__(self, message: str, slot: str, backend: str = "unknown"):
        self.slot = slot
        self.backend = backend
        super().__init__(f"[{backend}] {message}")


class StoreReadError(StoreError):
    """Reading a slot failed for a reason other than absence."""

    pass


class StoreWriteError(StoreError):
    """Writing or deleting a slot failed."""

    pass


class ImportBlockedError(CuratorError):
    """Import attempted while the working collection still holds records."""

    def __init__(self, record_count: int):
        self.record_count = record_count
        super().__init__(
            f"Import blocked: dataset already has {record_count} records. "
            "Export or clear the current dataset before importing new data."
        )


class DatasetNameConflictError(CuratorError):
    """A dataset with the requested name already exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"A dataset named '{name}' already exists. Please choose a different name."
        )
