"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/distance", status_code=status.HTTP_200_OK)
def health_distance() -> dict:
    """Report which distance provider is configured and whether it answers."""
    provider = settings.resolved_distance_provider()
    if provider == "google":
        from ...services.routing.google_client import check_health
    elif provider == "osrm":
        from ...services.routing.osrm_client import check_health
    else:
        return {"provider": provider, "status": "ok", "fallback": "haversine"}

    healthy = check_health()
    return {
        "provider": provider,
        "status": "ok" if healthy else "degraded",
        "fallback": "haversine",
    }
