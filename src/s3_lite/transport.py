"""HTTP transport built on requests.

The client only needs an object with ``execute(request, on_error)`` returning
a ``ResponseEnvelope`` or None, so tests swap in stub transports.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

import requests
import urllib3

from s3_lite.errors import ErrorHandler, TransportError
from s3_lite.response import ResponseEnvelope

logger = logging.getLogger(__name__)

# Headers never written to logs
REDACTED_HEADERS = {"authorization"}


@dataclass(frozen=True)
class HttpRequest:
    """A single request relative to the transport's base URL."""

    method: str
    path: str
    headers: dict = field(default_factory=dict)
    params: dict = field(default_factory=dict)
    body: Optional[Union[bytes, Iterable[bytes]]] = None
    stream: bool = False
    content_type: Optional[str] = None
    accept: Optional[str] = None

    def all_headers(self) -> dict:
        """Headers including Content-Type and Accept when set."""
        headers = dict(self.headers)
        if self.content_type:
            headers["Content-Type"] = self.content_type
        if self.accept:
            headers["Accept"] = self.accept
        return headers


def describe_request(request: HttpRequest) -> dict:
    """Format request information for logging, secrets redacted."""
    headers = {
        key: "[REDACTED]" if key.lower() in REDACTED_HEADERS else value
        for key, value in request.all_headers().items()
    }
    return {
        "method": request.method,
        "path": request.path,
        "params": dict(request.params),
        "headers": headers,
        "has_body": request.body is not None,
        "stream": request.stream,
    }


class RequestsTransport:
    """Executes requests against ``base_url`` with certificate verification."""

    verify = True

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def execute(self, request: HttpRequest, on_error: ErrorHandler) -> Optional[ResponseEnvelope]:
        """Send ``request``; return its envelope, or None after reporting a failure."""
        logger.debug("Request: %s", describe_request(request))
        try:
            response = self._session.request(
                request.method,
                self.url_for(request.path),
                params=request.params or None,
                headers=request.all_headers(),
                data=request.body,
                stream=True,
                timeout=self._timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            on_error(TransportError(f"{request.method} {request.path} failed: {e}"))
            return None

        logger.debug("Response: %s %s -> %s", request.method, request.path, response.status_code)
        return self._envelope(response, request.stream, on_error)

    def _envelope(
        self,
        response: requests.Response,
        stream: bool,
        on_error: ErrorHandler,
    ) -> Optional[ResponseEnvelope]:
        status = response.status_code
        raw_headers = response.raw.headers
        headers = {name: raw_headers.getlist(name) for name in raw_headers}

        if stream and status < 400:
            return ResponseEnvelope(status, headers, body=response.raw, closer=response.close)

        # Content-Encoding is left in place; the envelope undoes gzip itself.
        try:
            content = response.raw.read(decode_content=False)
        except (urllib3.exceptions.HTTPError, OSError) as e:
            on_error(TransportError(f"Cannot read response body: {e}", status_code=status))
            return None
        finally:
            response.close()

        stream_kwargs = {"error" if status >= 400 else "body": io.BytesIO(content)}
        return ResponseEnvelope(status, headers, **stream_kwargs)


class InsecureRequestsTransport(RequestsTransport):
    """INSECURE: accepts any server certificate and host name.

    Only for test rigs with self-signed certificates. Never chosen unless the
    configuration asks for it explicitly.
    """

    verify = False

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(base_url, session=session, timeout=timeout)
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        logger.warning("TLS certificate verification is DISABLED for %s", self.base_url)
