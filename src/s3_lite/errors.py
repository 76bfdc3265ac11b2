"""Exception taxonomy for the object store client.

Operations never raise these past their boundary; they are handed to the
caller's error handler and the operation returns its degraded value.
``ConfigurationError`` is the exception: it is raised at startup.
"""

from typing import Callable, Optional


ErrorHandler = Callable[[Exception], None]


class S3LiteError(Exception):
    """Base class for all client errors."""


class ConfigurationError(S3LiteError):
    """Missing or invalid base URL, access key or secret key."""


class EncodingError(S3LiteError):
    """An identifier or signature input could not be encoded."""


class SigningError(S3LiteError):
    """HMAC initialization or computation failed."""


class TransportError(S3LiteError):
    """Network/TLS failure, or a response with an unexpected status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class DecodeError(S3LiteError):
    """Corrupt gzip stream, invalid UTF-8, or non-conforming XML."""


def ignore_error(error: Exception) -> None:
    """Error handler that drops the error."""
