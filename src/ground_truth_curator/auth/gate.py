"""Shared-secret access gate for the document workspace."""

import hmac
import logging

from ground_truth_curator.config import settings

logger = logging.getLogger(__name__)


def verify_access(secret: str | None, expected: str | None = None) -> bool:
    """Check a submitted password against the configured one.

    Args:
        secret: Password submitted by the user
        expected: Configured password (defaults to DOCUMENT_ACCESS_PASSWORD)

    Returns:
        True only if a password is configured and ``secret`` matches it
    """
    expected = settings.DOCUMENT_ACCESS_PASSWORD if expected is None else expected
    if not expected:
        logger.error("DOCUMENT_ACCESS_PASSWORD is not configured; access denied")
        return False
    if not secret:
        return False

    granted = hmac.compare_digest(secret.encode("utf-8"), expected.encode("utf-8"))
    if not granted:
        logger.warning("Document workspace access denied: invalid password")
    return granted
