"""AWS REST (Signature Version 2) request signing.

The string-to-sign carries an empty Content-MD5 line and no ``x-amz-*``
headers. Requests needing either are outside what this client can
authenticate.
"""

import base64
import hashlib
import hmac
from dataclasses import dataclass
from email.utils import formatdate
from typing import Optional

from s3_lite.errors import EncodingError, ErrorHandler, SigningError

AUTHORIZATION_PREFIX = "AWS"


@dataclass(frozen=True)
class SignedRequest:
    """Signing inputs and the resulting Authorization header for one call."""

    method: str
    content_type: str
    formatted_date: str
    resource_path: str
    authorization: str


def http_date(now: Optional[float] = None) -> str:
    """Format a Date header value, e.g. ``Mon, 19 Oct 2026 10:00:00 GMT``.

    Always GMT and English day/month names regardless of locale.
    """
    return formatdate(now, usegmt=True)


def string_to_sign(method: str, content_type: str, formatted_date: str, resource_path: str) -> str:
    """Build the canonical string hashed for the signature."""
    return f"{method}\n\n{content_type}\n{formatted_date}\n{resource_path}"


class Signer:
    """Computes Authorization header values for one access/secret key pair."""

    def __init__(self, access_key: str, secret_key: str):
        self._access_key = access_key
        self._secret_key = secret_key

    def signature(
        self,
        method: str,
        content_type: str,
        formatted_date: str,
        resource_path: str,
        on_error: ErrorHandler,
    ) -> str:
        """Return base64(HMAC-SHA1(secret, string-to-sign)), or "" on failure."""
        signee = string_to_sign(method, content_type, formatted_date, resource_path)
        try:
            key = self._secret_key.encode("utf-8")
            message = signee.encode("utf-8")
        except (UnicodeEncodeError, AttributeError) as e:
            on_error(EncodingError(f"Cannot UTF-8 encode signature input: {e}"))
            return ""

        try:
            digest = hmac.new(key, message, hashlib.sha1).digest()
        except (ValueError, TypeError) as e:
            on_error(SigningError(f"HMAC-SHA1 unavailable: {e}"))
            return ""

        return base64.b64encode(digest).decode("ascii")

    def compute(
        self,
        method: str,
        content_type: str,
        formatted_date: str,
        resource_path: str,
        on_error: ErrorHandler,
    ) -> str:
        """Return the full ``AWS <access_key>:<signature>`` header value.

        A signing failure yields an empty signature part, so the server
        rejects the request instead of it going out unauthenticated.
        """
        signature = self.signature(method, content_type, formatted_date, resource_path, on_error)
        return f"{AUTHORIZATION_PREFIX} {self._access_key}:{signature}"

    def sign(
        self,
        method: str,
        resource_path: str,
        on_error: ErrorHandler,
        content_type: str = "",
        formatted_date: Optional[str] = None,
    ) -> SignedRequest:
        """Sign one request, stamping a fresh Date unless one is given."""
        formatted_date = formatted_date or http_date()
        return SignedRequest(
            method=method,
            content_type=content_type,
            formatted_date=formatted_date,
            resource_path=resource_path,
            authorization=self.compute(method, content_type, formatted_date, resource_path, on_error),
        )
