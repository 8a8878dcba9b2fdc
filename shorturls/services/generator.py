"""Shortcode generation.

Codes are the base64url encoding of a few random bytes, so they are safe to
use as a URL path segment without escaping.
"""

import re
import secrets

# base64url alphabet, no padding
SHORT_CODE_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class ShortCodeGenerator:
    """
    Random shortcode source.

    The generator only proposes candidates; the registry is responsible for
    rejecting candidates that are already taken.
    """

    def __init__(self, nbytes: int = 3):
        """
        Args:
            nbytes: Number of random bytes per code; 3 bytes give 4 characters
        """
        if nbytes <= 0:
            raise ValueError("nbytes must be positive")
        self.nbytes = nbytes

    def generate(self) -> str:
        return secrets.token_urlsafe(self.nbytes)


def is_valid_short_code(code: str, max_length: int) -> bool:
    """Check that a requested code is non-empty, short enough and URL-safe."""
    if not code or len(code) > max_length:
        return False
    return bool(SHORT_CODE_PATTERN.fullmatch(code))
