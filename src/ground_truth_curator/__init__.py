"""Ground-truth dataset curation: import, review, approve and export."""

__version__ = "0.1.0"
