"""Short link endpoints: creation, redirection with click tracking, and stats.

Registry failures are raised as ``ShortURLError`` subclasses and rendered
by the application's exception handler.
"""

from fastapi import APIRouter, Depends, Path, Request, status
from starlette.responses import RedirectResponse

from shorturls.api import schemas
from shorturls.api.dependencies import build_short_link, get_registry
from shorturls.core.telemetry import get_service_metrics
from shorturls.middleware.logging import get_client_ip
from shorturls.services.registry import ShortcodeRegistry

router = APIRouter(prefix="/shorturls", tags=["shorturls"])


@router.post(
    "",
    response_model=schemas.ShortURLCreateResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Invalid URL or shortcode"},
        409: {"model": schemas.ErrorResponse, "description": "Shortcode already in use"},
    },
)
async def create_short_url(
    payload: schemas.ShortURLCreateRequest,
    request: Request,
    registry: ShortcodeRegistry = Depends(get_registry),
):
    link = registry.create(
        url=payload.url,
        validity=payload.validity,
        requested_code=payload.shortcode,
    )
    get_service_metrics().links_created.add(1)
    return schemas.ShortURLCreateResponse(
        short_link=build_short_link(request, link.short_code),
        expiry=link.expires_at,
    )


@router.get(
    "/{short_code}",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Shortcode not found"},
        410: {"model": schemas.ErrorResponse, "description": "Shortlink expired"},
    },
)
async def redirect_to_original_url(
    request: Request,
    short_code: str = Path(..., description="The shortcode to follow"),
    registry: ShortcodeRegistry = Depends(get_registry),
):
    """Redirect to the original URL, recording the click."""
    original_url = registry.resolve(
        short_code,
        referrer=request.headers.get("referer"),
        source_address=get_client_ip(request),
    )
    get_service_metrics().redirects.add(1)
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)


@router.get(
    "/{short_code}/stats",
    response_model=schemas.ShortURLStatsResponse,
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Shortcode not found"},
    },
)
async def get_short_url_stats(
    short_code: str = Path(..., description="The shortcode to report on"),
    registry: ShortcodeRegistry = Depends(get_registry),
):
    record = registry.stats(short_code)
    return schemas.ShortURLStatsResponse.from_record(record)
