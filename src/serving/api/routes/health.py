"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from src.config import Settings, get_settings
from src.serving.api.dependencies import get_metrics_cache
from src.serving.cache import MetricsFileCache

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Settings = Depends(get_settings),
    cache: MetricsFileCache = Depends(get_metrics_cache),
) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Cached metrics file presence
    - Fallback API key configuration
    """
    checks = {}
    overall_status = "healthy"

    if cache.exists():
        checks["cache"] = {"status": "healthy", "path": str(cache.path)}
    else:
        checks["cache"] = {"status": "empty", "path": str(cache.path)}
        overall_status = "degraded"

    api_key = settings.klaviyo.api_key
    if api_key is not None and api_key.get_secret_value():
        checks["credentials"] = {"status": "configured"}
    else:
        # Callers may still supply a key per request
        checks["credentials"] = {"status": "missing"}

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes liveness probe endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    cache: MetricsFileCache = Depends(get_metrics_cache),
) -> Dict[str, str]:
    """
    Kubernetes readiness probe endpoint.

    Ready once the exports directory exists or can be created.
    """
    try:
        cache.path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        response.status_code = 503
        return {"status": "not_ready", "reason": str(e)}
    return {"status": "ready"}
