"""Configuration management using pydantic-settings."""

import logging

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Ground Truth Curator"
    DEBUG: bool = False
    API_URL: str = "http://localhost:8000"  # Used by the Streamlit UI for links only

    # Storage backend: 'file', 'gcs' or 'local'
    STORAGE_BACKEND: str = "file"

    # File storage
    DATA_DIR: str = "data"
    EXPORTS_DIR: str = "data/exports"  # Server-side copy of every export

    # Google Cloud Storage
    GCP_PROJECT_ID: str = ""
    GCS_BUCKET_NAME: str = ""
    GCS_PREFIX: str = ""  # Object name prefix, e.g. "curation/"

    # Local named-dataset store (SQLite via SQLAlchemy)
    LOCAL_STORE_URL: str = "sqlite:///./data/curator.db"

    # Well-known slots for single-dataset backends
    ENTRY_SLOT: str = "current-dataset"
    DOCUMENT_SLOT: str = "current-document-dataset"

    # Review behaviour
    DEFAULT_USERNAME: str = "User"  # Owner stamped when an update finds no dataset
    DELETE_CONFIRM_SECONDS: float = 3.0

    # Access gate for the document workspace
    DOCUMENT_ACCESS_PASSWORD: str = ""

    # Export filename labels
    ENTRY_EXPORT_LABEL: str = "ground_truth"
    DOCUMENT_EXPORT_LABEL: str = "legal_documents"

    @property
    def storage_backend(self) -> str:
        """Normalized storage backend name."""
        return self.STORAGE_BACKEND.strip().lower()

    @model_validator(mode="after")
    def check_security_settings(self) -> "Settings":
        """Validate security settings."""
        if not self.DEBUG and not self.DOCUMENT_ACCESS_PASSWORD:
            logging.warning(
                "SECURITY WARNING: DOCUMENT_ACCESS_PASSWORD is not set; "
                "the document workspace will refuse every login."
            )
        if self.storage_backend == "gcs" and not self.GCS_BUCKET_NAME:
            logging.warning("STORAGE_BACKEND is 'gcs' but GCS_BUCKET_NAME is empty")
        return self


settings = Settings()
