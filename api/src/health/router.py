"""Health check endpoints."""

from fastapi import APIRouter, Request

from src.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - ready once the progress services are wired."""
    settings = get_settings()
    app_state = request.app.state
    database_ready = getattr(app_state, "progress_service", None) is not None
    locks = getattr(app_state, "progress_locks", None)
    return {
        "status": "ready" if database_ready else "degraded",
        "environment": settings.environment,
        "database": database_ready,
        "distributed_locks": bool(locks and locks.is_distributed),
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
