"""Health check router.

Endpoints:
    GET /api/health           - Liveness, no dependencies touched
    GET /api/health/firestore - Firestore connectivity (one-document read)
"""

import os
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..dependencies import get_firestore
from ..repository import ORDERS_COLLECTION
from ..version import API_VERSION

router = APIRouter()
logger = logging.getLogger(__name__)

DEBUG_MODE = os.environ.get("DEBUG", "false").lower() == "true"


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
    }


@router.get("/health/firestore")
async def firestore_health(db=Depends(get_firestore)) -> dict:
    """Read a single order document to prove the store is reachable."""
    now = datetime.now(timezone.utc)
    try:
        list(db.collection(ORDERS_COLLECTION).limit(1).stream())
    except Exception as e:
        logger.error(f"Firestore health check failed: {e}")
        body = {
            "status": "unhealthy",
            "database": "firestore",
            "timestamp": now.isoformat(),
        }
        if DEBUG_MODE:
            body["error"] = str(e)
        return body

    return {
        "status": "healthy",
        "database": "firestore",
        "timestamp": now.isoformat(),
    }
