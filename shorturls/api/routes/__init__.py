"""Routes package initialization.

This module exports the route collection for the application.
"""

from fastapi import APIRouter

from shorturls.api.routes import health, links
from shorturls.core.config import settings

# Create root router
api_router = APIRouter()

# Include health check routes with API prefix
api_router.include_router(
    health.router,
    prefix=settings.API_PREFIX
)

# Short links live at /shorturls, outside the API prefix
api_router.include_router(
    links.router
)

__all__ = ["api_router"]
