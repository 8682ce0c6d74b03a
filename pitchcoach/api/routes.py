"""Health endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from pitchcoach.config import get_settings
from pitchcoach.services.job_runner import pending_job_count
from pitchcoach.services.job_store import get_job_store

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Status, timestamp in ISO8601 format, and job store health
    """
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "job_store": settings.job_store_backend,
        "pending_jobs": pending_job_count(),
    }

    try:
        store_healthy = await get_job_store().health_check()
        health_status["store"] = "healthy" if store_healthy else "unavailable"
    except Exception:
        health_status["store"] = "unavailable"

    return health_status
