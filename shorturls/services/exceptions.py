"""Exceptions for the short URL service layer.

Every registry failure is an expected outcome the caller can recover from.
Each exception carries an ``ErrorKind`` so the HTTP layer can map it to
exactly one status code and machine-readable error code.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable failure kinds returned to API clients."""
    INVALID_URL = "InvalidUrl"
    INVALID_CODE = "InvalidCode"
    CODE_CONFLICT = "CodeConflict"
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    INTERNAL_ERROR = "InternalError"


class ServiceError(Exception):
    """Base exception for all service-level errors."""
    kind: ErrorKind = ErrorKind.INTERNAL_ERROR


class ShortURLError(ServiceError):
    """Base exception for short URL registry errors."""
    pass


class InvalidURLError(ShortURLError):
    """The URL is missing or is not an absolute URL with scheme and host."""
    kind = ErrorKind.INVALID_URL


class CustomCodeValidationError(ShortURLError):
    """The requested shortcode doesn't meet requirements."""
    kind = ErrorKind.INVALID_CODE


class CodeConflictError(ShortURLError):
    """The requested shortcode is already in use."""
    kind = ErrorKind.CODE_CONFLICT

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Shortcode '{short_code}' is already in use")


class URLNotFoundError(ShortURLError):
    """No link is registered under the shortcode."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Shortcode '{short_code}' not found")


class URLExpiredError(ShortURLError):
    """The link exists but its validity window has passed."""
    kind = ErrorKind.EXPIRED

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Shortlink '{short_code}' has expired")


class RegistryInternalError(ShortURLError):
    """Unexpected registry failure; reported to clients as an opaque error."""
    kind = ErrorKind.INTERNAL_ERROR


class ShortCodeGenerationError(RegistryInternalError):
    """Failed to generate a unique short code."""
    pass
