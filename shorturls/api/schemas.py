"""API request and response schemas.

This module contains Pydantic models for API request validation
and response serialization. JSON field names are camelCase and
timestamps are ISO-8601 UTC with millisecond precision.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from shorturls.models.link import LinkRecord


def to_iso8601(value: datetime) -> str:
    """Format a timestamp like ``2024-05-01T12:30:00.000Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


IsoTimestamp = Annotated[datetime, PlainSerializer(to_iso8601, return_type=str)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShortURLCreateRequest(BaseModel):
    """Request schema for creating a short link.

    ``url`` and ``validity`` are deliberately loose: the registry decides
    what counts as a valid URL and how a validity value is interpreted.
    """
    url: Any = None
    validity: Any = None
    shortcode: Optional[str] = None

    @field_validator("shortcode", mode="before")
    def coerce_numeric_code(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class ShortURLCreateResponse(CamelModel):
    """Response schema for a newly created short link."""
    short_link: str
    expiry: IsoTimestamp


class ClickDetail(CamelModel):
    """Schema for one recorded redirect."""
    timestamp: IsoTimestamp
    referrer: Optional[str] = None
    location: Optional[str] = None


class ShortURLStatsResponse(CamelModel):
    """Response schema for link statistics."""
    shortcode: str
    original_url: str
    created_at: IsoTimestamp
    expiry: IsoTimestamp
    total_clicks: int
    click_details: List[ClickDetail]

    @classmethod
    def from_record(cls, record: LinkRecord) -> "ShortURLStatsResponse":
        return cls(
            shortcode=record.short_code,
            original_url=record.original_url,
            created_at=record.created_at,
            expiry=record.expires_at,
            total_clicks=record.click_count,
            click_details=[
                ClickDetail(
                    timestamp=click.timestamp,
                    referrer=click.referrer,
                    location=click.source_address,
                )
                for click in record.click_events
            ],
        )


class HealthResponse(BaseModel):
    """Response schema for the health endpoint."""
    status: str
    version: str
    environment: str
    timestamp: float
    components: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Response schema for errors."""
    detail: str
    error_code: Optional[str] = None  # Machine-readable error code
    error_id: Optional[str] = None  # Set for internal errors
