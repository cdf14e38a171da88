"""Health check endpoints for the curator API."""

import logging
from typing import Any

from fastapi import APIRouter

from ground_truth_curator.config import settings
from ground_truth_curator.stores.factory import build_store, default_slot
from ground_truth_curator.records.models import RecordKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Basic health check - returns ok if the service is running."""
    return {"status": "ok"}


@router.get("/health/ready")
def ready() -> dict[str, Any]:
    """
    Readiness check - verifies the configured dataset store answers.

    Each record kind's store is checked for existence of its slot.
    """
    services: dict[str, str] = {}
    all_ok = True

    for kind in RecordKind:
        try:
            store = build_store(kind)
            store.exists(default_slot(kind))
            services[f"{kind.value}_store"] = f"ok ({store.backend_name})"
        except Exception as e:
            logger.warning(f"Store check failed for {kind.value}: {e}")
            services[f"{kind.value}_store"] = f"error: {type(e).__name__}"
            all_ok = False

    status = "ready" if all_ok else "degraded"
    return {"status": status, "backend": settings.storage_backend, "services": services}
