"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_osrm_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.osrm_client import check_health as osrm_health_check
    return osrm_health_check


@router.get("/health/routing", status_code=status.HTTP_200_OK)
def health_routing() -> dict:
    """Check the route service; straight-line fallback keeps dispatch usable when it is down."""
    healthy = _get_osrm_health_check()()
    return {
        "service": "osrm",
        "configured": bool(settings.osrm_base_url),
        "healthy": healthy,
        "fallback": "straight_line" if settings.route_fallback_to_straight_line else None,
    }


@router.get("/health/backend", status_code=status.HTTP_200_OK)
def health_backend() -> dict:
    """Check the operations backend used for candidates and commits."""
    from ...data.backend_client import BackendClient

    try:
        healthy = BackendClient().check_health()
    except ValueError as exc:
        return {"service": "backend", "configured": False, "healthy": False, "error": str(exc)}
    return {"service": "backend", "configured": True, "healthy": healthy}
