"""Lightweight S3-compatible HTTP client.

Each operation signs its own request (AWS REST signature V2), sends it
through the transport and interprets the response. No error escapes an
operation: failures go to the error handler and the operation returns its
degraded value (False, "", [], or None).
"""

import logging
from typing import BinaryIO, Optional, Union

from s3_lite.config import StoreConfig
from s3_lite.errors import DecodeError, EncodingError, ErrorHandler, TransportError, ignore_error
from s3_lite.listing import BucketListing, parse_bucket_listing, parse_bucket_names
from s3_lite.response import HTTP_NO_CONTENT, HTTP_OK, ResponseEnvelope
from s3_lite.signing import Signer
from s3_lite.transport import HttpRequest, InsecureRequestsTransport, RequestsTransport
from s3_lite.utils import as_stream, iter_chunks, url_encode_key

logger = logging.getLogger(__name__)

METHOD_HEAD = "HEAD"
METHOD_GET = "GET"
METHOD_PUT = "PUT"
METHOD_DELETE = "DELETE"

MEDIATYPE_NONE = ""
MEDIATYPE_OCTETSTREAM = "application/octet-stream"
ACCEPT_ANY = "*/*"

HEADER_AUTHORIZATION = "Authorization"
HEADER_DATE = "Date"

HTTP_CONFLICT = 409
# Returned when a concurrent caller created the bucket first
BUCKET_EXISTS_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}

LIST_OBJECTS_V2_PARAMS = {"list-type": "2"}


def log_error(error: Exception) -> None:
    """Default error handler: log and carry on."""
    logger.warning("Object store error: %s", error)


def build_transport(config: StoreConfig) -> RequestsTransport:
    """Create the requests transport the configuration asks for."""
    transport_class = InsecureRequestsTransport if config.insecure_tls else RequestsTransport
    return transport_class(config.base_url, timeout=config.timeout)


class S3Client:
    """Bucket and object operations against one S3-compatible endpoint.

    Args:
        config: validated store configuration
        transport: anything with ``execute(HttpRequest, on_error)``; defaults
            to a requests transport built from ``config``
        on_error: handler used by operations called without their own
    """

    def __init__(
        self,
        config: StoreConfig,
        transport=None,
        on_error: Optional[ErrorHandler] = None,
    ):
        credentials = config.credentials
        self._signer = Signer(credentials.access_key, credentials.secret_key)
        self._transport = transport if transport is not None else build_transport(config)
        self._on_error = on_error or log_error

    @property
    def transport(self):
        return self._transport

    @property
    def on_error(self) -> ErrorHandler:
        return self._on_error

    def head_bucket(self, bucket: str, on_error: Optional[ErrorHandler] = None) -> bool:
        """Determine whether a bucket exists.

        A non-200 status is an answer, not an error, and is not reported.
        """
        on_error = on_error or self._on_error
        resource_path = self._resource_path(on_error, bucket)
        if resource_path is None:
            return False

        envelope = self._execute(METHOD_HEAD, resource_path, on_error)
        if envelope is None:
            return False
        with envelope:
            return envelope.is_valid(ignore_error)

    def get_all_buckets(self, on_error: Optional[ErrorHandler] = None) -> str:
        """Return the raw ListBuckets XML for the service, "" on failure."""
        on_error = on_error or self._on_error
        envelope = self._execute(METHOD_GET, "/", on_error)
        if envelope is None:
            return ""
        with envelope:
            if not envelope.is_valid(on_error):
                return ""
            return envelope.response_text(on_error)

    def list_buckets(self, on_error: Optional[ErrorHandler] = None) -> list[str]:
        """Return the names of all buckets, [] on failure."""
        on_error = on_error or self._on_error
        text = self.get_all_buckets(on_error)
        if not text:
            return []
        try:
            return parse_bucket_names(text)
        except DecodeError as e:
            on_error(e)
            return []

    def put_bucket(self, bucket: str, on_error: Optional[ErrorHandler] = None) -> bool:
        """Create a bucket.

        A bucket that already exists counts as created: a concurrent caller
        may have won the race between ``head_bucket`` and this call.
        """
        on_error = on_error or self._on_error
        resource_path = self._resource_path(on_error, bucket)
        if resource_path is None:
            return False

        envelope = self._execute(METHOD_PUT, resource_path, on_error)
        if envelope is None:
            return False
        with envelope:
            if envelope.status_code == HTTP_CONFLICT and envelope.error_code() in BUCKET_EXISTS_CODES:
                logger.debug("Bucket %s already exists", bucket)
                return True
            return envelope.is_valid(on_error)

    def list_objects(self, bucket: str, on_error: Optional[ErrorHandler] = None) -> Optional[BucketListing]:
        """Fetch and decode the ListObjectsV2 result for a bucket."""
        on_error = on_error or self._on_error
        resource_path = self._resource_path(on_error, bucket)
        if resource_path is None:
            return None

        envelope = self._execute(METHOD_GET, resource_path, on_error, params=LIST_OBJECTS_V2_PARAMS)
        if envelope is None:
            return None
        with envelope:
            if not envelope.is_valid(on_error):
                return None
            text = envelope.response_text(on_error)

        try:
            return parse_bucket_listing(text)
        except DecodeError as e:
            on_error(e)
            return None

    def get_object_list(self, bucket: str, on_error: Optional[ErrorHandler] = None) -> list[str]:
        """Return the object keys in a bucket.

        Empty when the listing fails or reports ``KeyCount <= 0``; the count
        wins even if ``Contents`` elements are present.
        """
        listing = self.list_objects(bucket, on_error)
        if listing is None or listing.key_count <= 0:
            return []
        return listing.keys

    def get_object(
        self,
        bucket: str,
        object_name: str,
        on_error: Optional[ErrorHandler] = None,
    ) -> Optional[BinaryIO]:
        """Open an object for streaming reads.

        The returned stream holds the connection open; close it when done.
        """
        on_error = on_error or self._on_error
        resource_path = self._resource_path(on_error, bucket, object_name)
        if resource_path is None:
            return None

        envelope = self._execute(METHOD_GET, resource_path, on_error, stream=True)
        if envelope is None:
            return None
        if not envelope.is_valid(on_error):
            envelope.close()
            return None
        return envelope.stream()

    def put_object(
        self,
        bucket: str,
        object_name: str,
        source: Union[bytes, BinaryIO],
        content_type: str = MEDIATYPE_OCTETSTREAM,
        on_error: Optional[ErrorHandler] = None,
    ) -> bool:
        """Upload an object, streaming ``source`` in 4096-byte chunks."""
        on_error = on_error or self._on_error
        resource_path = self._resource_path(on_error, bucket, object_name)
        if resource_path is None:
            return False

        envelope = self._execute(
            METHOD_PUT,
            resource_path,
            on_error,
            content_type=content_type,
            body=iter_chunks(as_stream(source)),
            accept=ACCEPT_ANY,
        )
        if envelope is None:
            return False
        with envelope:
            return envelope.is_valid(on_error)

    def delete_object(self, bucket: str, object_name: str, on_error: Optional[ErrorHandler] = None) -> None:
        """Delete an object without checking that it exists."""
        on_error = on_error or self._on_error
        resource_path = self._resource_path(on_error, bucket, object_name)
        if resource_path is None:
            return

        envelope = self._execute(METHOD_DELETE, resource_path, on_error)
        if envelope is not None:
            with envelope:
                envelope.is_valid(on_error, expected=(HTTP_NO_CONTENT, HTTP_OK))

    def create_bucket_and_upload(
        self,
        bucket: str,
        object_name: str,
        source: Union[bytes, BinaryIO],
        content_type: str = MEDIATYPE_OCTETSTREAM,
        on_error: Optional[ErrorHandler] = None,
    ) -> bool:
        """Create the bucket if it is missing, then upload.

        Best-effort, not transactional: concurrent callers may both try to
        create the bucket, which ``put_bucket`` tolerates.
        """
        if not self.head_bucket(bucket, on_error):
            self.put_bucket(bucket, on_error)
        return self.put_object(bucket, object_name, source, content_type, on_error)

    def _resource_path(self, on_error: ErrorHandler, bucket: str, object_name: Optional[str] = None) -> Optional[str]:
        """Build ``/bucket`` or ``/bucket/object``; None after reporting an encoding failure."""
        try:
            segments = [url_encode_key(bucket)]
            if object_name is not None:
                segments.append(url_encode_key(object_name))
        except EncodingError as e:
            on_error(e)
            return None
        return "/" + "/".join(segments)

    def _execute(
        self,
        method: str,
        resource_path: str,
        on_error: ErrorHandler,
        content_type: str = MEDIATYPE_NONE,
        **request_kwargs,
    ) -> Optional[ResponseEnvelope]:
        signed = self._signer.sign(method, resource_path, on_error, content_type=content_type)
        request = HttpRequest(
            method=method,
            path=resource_path,
            headers={
                HEADER_DATE: signed.formatted_date,
                HEADER_AUTHORIZATION: signed.authorization,
            },
            content_type=content_type or None,
            **request_kwargs,
        )
        try:
            return self._transport.execute(request, on_error)
        except OSError as e:
            on_error(TransportError(f"{method} {resource_path} failed: {e}"))
            return None
