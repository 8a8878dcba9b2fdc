"""
Click event tracking data models.

This module defines the ClickEvent model recorded for every successful redirect.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClickEvent(BaseModel):
    """
    A single redirect through a short link.

    Click events are immutable once recorded; a link's history is the
    ordered sequence of these events.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(
        description="UTC timestamp when the short link was followed"
    )
    referrer: Optional[str] = Field(
        default=None,
        description="Referer header supplied by the visitor, if any"
    )
    source_address: Optional[str] = Field(
        default=None,
        description="Best-effort network origin of the visitor"
    )
