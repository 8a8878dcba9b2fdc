"""Health check endpoints for monitoring application status."""

import time

from fastapi import APIRouter, Depends, Request, status

from shorturls.api import schemas
from shorturls.api.dependencies import get_event_sink, get_registry
from shorturls.core.config import settings
from shorturls.core.events import CollectorEventSink, EventSink
from shorturls.services.registry import ShortcodeRegistry

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=schemas.HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Get system health status",
    response_description="Health status of all system components"
)
async def health_check(
    registry: ShortcodeRegistry = Depends(get_registry),
    sink: EventSink = Depends(get_event_sink),
):
    """Check health of all system components."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT.value,
        "timestamp": time.time(),
        "components": {
            "registry": {
                "status": "healthy",
                "links": len(registry),
            }
        }
    }

    if isinstance(sink, CollectorEventSink):
        if sink.is_running:
            health_status["components"]["event_sink"] = {
                "status": "healthy",
                "endpoint": sink.endpoint,
            }
        else:
            health_status["status"] = "degraded"
            health_status["components"]["event_sink"] = {
                "status": "unhealthy",
                "error": "Collector sink is not running, events are logged locally",
            }
    else:
        health_status["components"]["event_sink"] = {"status": "healthy", "mode": "local"}

    return health_status


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    response_description="Application readiness status"
)
async def readiness_probe(request: Request):
    """Check if application is ready to handle requests."""
    components_status = {
        "api": True,
        "registry": getattr(request.app.state, "registry", None) is not None,
    }

    return {
        "ready": all(components_status.values()),
        "components": components_status
    }


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    response_description="Application liveness status"
)
async def liveness_probe():
    """Simple check that application is running."""
    return {"alive": True}
