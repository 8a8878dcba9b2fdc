"""Short link data models.

This module defines the LinkRecord stored in the registry for every shortcode,
and the CreatedLink value returned when a link is registered.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from shorturls.models.click import ClickEvent


class LinkRecord(BaseModel):
    """
    Registry entry for one shortcode.

    ``original_url``, ``created_at`` and ``expires_at`` are fixed at creation.
    The only mutation is ``register_click``, which the registry performs under
    its lock so that ``click_count`` always equals ``len(click_events)``.
    """

    short_code: str = Field(description="Key the record is stored under")
    original_url: str = Field(description="The original (long) URL to redirect to")
    created_at: datetime = Field(description="UTC timestamp when the link was created")
    expires_at: datetime = Field(description="UTC timestamp after which redirects are refused")
    click_count: int = Field(default=0, description="Number of successful redirects")
    click_events: List[ClickEvent] = Field(
        default_factory=list,
        description="Redirect history in chronological order"
    )

    def is_expired(self, now: datetime) -> bool:
        """Check if the link has expired at ``now``.

        The expiry instant itself still counts as active.
        """
        return now > self.expires_at

    def register_click(self, event: ClickEvent) -> None:
        self.click_events.append(event)
        self.click_count += 1

    def snapshot(self) -> "LinkRecord":
        """Return an independent copy that later clicks won't touch."""
        return self.model_copy(deep=True)


class CreatedLink(BaseModel):
    """Result of registering a new short link."""

    model_config = ConfigDict(frozen=True)

    short_code: str
    original_url: str
    created_at: datetime
    expires_at: datetime
