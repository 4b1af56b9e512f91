"""Health check endpoints."""

from fastapi import APIRouter

from taskboard.api.deps import AppSettings

router = APIRouter()


@router.get("/health")
async def health_check(settings: AppSettings) -> dict[str, str]:
    """Basic health check."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "storage": settings.storage_backend,
    }
