"""Test-level fixtures and stub transports.

No test touches the network: the client is always given a stub transport
that records the requests it receives.
"""

import gzip
import io
from typing import Callable, Optional
from urllib.parse import unquote
from xml.sax.saxutils import escape as xml_escape

import pytest

from s3_lite.client import S3Client
from s3_lite.config import StoreConfig
from s3_lite.response import ResponseEnvelope
from s3_lite.transport import HttpRequest

S3_XMLNS = "http://s3.amazonaws.com/doc/2006-03-01/"


def _make_envelope(
    status_code: int = 200,
    body: Optional[bytes] = None,
    error: Optional[bytes] = None,
    headers: Optional[dict] = None,
    gzipped: bool = False,
) -> ResponseEnvelope:
    """Build an envelope; ``gzipped`` compresses the payload and sets Content-Encoding."""
    headers = dict(headers or {})
    if gzipped:
        headers["Content-Encoding"] = ["gzip"]
        body = gzip.compress(body) if body is not None else None
        error = gzip.compress(error) if error is not None else None
    return ResponseEnvelope(
        status_code,
        headers,
        body=io.BytesIO(body) if body is not None else None,
        error=io.BytesIO(error) if error is not None else None,
    )


def _error_body(code: str, message: str = "") -> bytes:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f"<Error><Code>{code}</Code><Message>{message}</Message></Error>"
    ).encode("utf-8")


def _listing_body(bucket: str, keys: list, key_count: Optional[int] = None) -> bytes:
    """Render a ListObjectsV2 result for ``keys``."""
    key_count = len(keys) if key_count is None else key_count
    contents = "".join(
        "<Contents>"
        f"<Key>{xml_escape(key)}</Key>"
        "<LastModified>2026-10-19T10:00:00.000Z</LastModified>"
        '<ETag>"d41d8cd98f00b204e9800998ecf8427e"</ETag>'
        "<Size>0</Size>"
        "<StorageClass>STANDARD</StorageClass>"
        "</Contents>"
        for key in keys
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<ListBucketResult xmlns="{S3_XMLNS}">'
        f"<Name>{xml_escape(bucket)}</Name><Prefix></Prefix>"
        f"<KeyCount>{key_count}</KeyCount><MaxKeys>1000</MaxKeys>"
        "<Delimiter></Delimiter><IsTruncated>false</IsTruncated>"
        f"{contents}</ListBucketResult>"
    ).encode("utf-8")


class StubTransport:
    """Records requests and answers them with ``responder(request, body)``.

    Request bodies are drained the way a real transport would send them.
    """

    def __init__(self, responder: Optional[Callable[[HttpRequest, Optional[bytes]], Optional[ResponseEnvelope]]] = None):
        self.requests: list[HttpRequest] = []
        self.bodies: list[Optional[bytes]] = []
        self.chunk_sizes: list[list[int]] = []
        self._responder = responder or (lambda request, body: _make_envelope(200))

    @classmethod
    def returning(cls, *envelopes: Optional[ResponseEnvelope]) -> "StubTransport":
        """Answer successive requests with ``envelopes`` in order."""
        queue = list(envelopes)
        return cls(lambda request, body: queue.pop(0))

    def execute(self, request: HttpRequest, on_error) -> Optional[ResponseEnvelope]:
        body = None
        if request.body is not None:
            chunks = list(request.body)
            self.chunk_sizes.append([len(chunk) for chunk in chunks])
            body = b"".join(chunks)
        self.requests.append(request)
        self.bodies.append(body)
        return self._responder(request, body)

    @property
    def last(self) -> HttpRequest:
        return self.requests[-1]


class InMemoryStore(StubTransport):
    """Stub transport behaving like a tiny S3 server kept in a dict."""

    def __init__(self):
        super().__init__(self._respond)
        self.buckets: dict[str, dict[str, bytes]] = {}

    def _respond(self, request: HttpRequest, body: Optional[bytes]) -> ResponseEnvelope:
        segments = [unquote(segment) for segment in request.path.lstrip("/").split("/", 1) if segment]
        bucket = segments[0] if segments else None
        key = segments[1] if len(segments) > 1 else None

        if bucket is None:
            names = "".join(f"<Bucket><Name>{name}</Name></Bucket>" for name in self.buckets)
            return _make_envelope(200, body=f"<ListAllMyBucketsResult><Buckets>{names}</Buckets></ListAllMyBucketsResult>".encode())

        objects = self.buckets.get(bucket)
        if key is None:
            if request.method == "PUT":
                if objects is not None:
                    return _make_envelope(409, error=_error_body("BucketAlreadyOwnedByYou"))
                self.buckets[bucket] = {}
                return _make_envelope(200)
            if objects is None:
                return _make_envelope(404, error=_error_body("NoSuchBucket"))
            if request.method == "HEAD":
                return _make_envelope(200)
            return _make_envelope(200, body=_listing_body(bucket, list(objects)))

        if objects is None:
            return _make_envelope(404, error=_error_body("NoSuchBucket"))
        if request.method == "PUT":
            objects[key] = body or b""
            return _make_envelope(200)
        if request.method == "DELETE":
            objects.pop(key, None)
            return _make_envelope(204)
        if key not in objects:
            return _make_envelope(404, error=_error_body("NoSuchKey"))
        return _make_envelope(200, body=objects[key])


class ErrorRecorder:
    """Error handler collecting every reported error."""

    def __init__(self):
        self.errors: list[Exception] = []

    def __call__(self, error: Exception) -> None:
        self.errors.append(error)

    def types(self) -> list[type]:
        return [type(error) for error in self.errors]


@pytest.fixture
def store_config():
    """Configuration matching the documented scenario."""
    return StoreConfig(base_url="https://store.example/minio", access_key="AK", secret_key="SK")


@pytest.fixture
def errors():
    return ErrorRecorder()


@pytest.fixture
def stub_transport():
    return StubTransport()


@pytest.fixture
def client(store_config, stub_transport, errors):
    """Client over a stub transport answering 200 to everything."""
    return S3Client(store_config, transport=stub_transport, on_error=errors)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def store_client(store_config, memory_store, errors):
    """Client over an in-memory store."""
    return S3Client(store_config, transport=memory_store, on_error=errors)


@pytest.fixture
def make_envelope():
    """Factory fixture for response envelopes."""
    return _make_envelope


@pytest.fixture
def error_body():
    """Factory fixture for S3 error XML bodies."""
    return _error_body


@pytest.fixture
def listing_body():
    """Factory fixture for ListObjectsV2 XML bodies."""
    return _listing_body


@pytest.fixture
def make_client(store_config, errors):
    """Factory fixture for clients over a given transport."""

    def _make(transport, on_error=None):
        return S3Client(store_config, transport=transport, on_error=on_error or errors)

    return _make


@pytest.fixture
def respond_with():
    """Factory fixture for stub transports answering with fixed envelopes in order."""
    return StubTransport.returning
