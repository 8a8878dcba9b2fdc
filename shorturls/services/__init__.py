"""Service layer for the short URL service.

This package contains the shortcode registry, the code generator, and the
exception hierarchy describing registry outcomes.
"""

from shorturls.services.generator import ShortCodeGenerator
from shorturls.services.registry import ShortcodeRegistry

__all__ = ["ShortCodeGenerator", "ShortcodeRegistry"]
