"""Health & Readiness Checks — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 unless both the database and the upload
      directory are usable (readiness); each check reported separately
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from datanest.api.deps import get_blob_store
from datanest.core.repository_protocols import BlobStore
from datanest.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Liveness check."""
    return {"status": "healthy", "service": "datanest-api", "version": "1.0.0"}


@router.get("/ready")
async def readiness_check(blobs: BlobStore = Depends(get_blob_store)):
    manager = database.db_manager
    checks = {
        "database": manager is not None and await manager.health_check(),
        "storage": await blobs.health_check(),
    }
    report = {name: "healthy" if ok else "unavailable" for name, ok in checks.items()}
    if not all(checks.values()):
        logger.warning("Readiness check failed", extra={"status": report})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": report},
        )
    return {"status": "ready", "checks": report}
