"""Core module for the short URL service."""

from shorturls.core.config import settings

__all__ = ["settings"]
