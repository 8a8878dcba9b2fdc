"""
Data models for the short URL service.

This module imports and exports all models used in the application.
"""

from shorturls.models.click import ClickEvent
from shorturls.models.link import CreatedLink, LinkRecord

__all__ = [
    "ClickEvent",
    "CreatedLink",
    "LinkRecord",
]
