"""Minimal S3-compatible object store client on raw HTTP."""

from s3_lite.client import S3Client
from s3_lite.config import Credentials, StoreConfig
from s3_lite.errors import (
    ConfigurationError,
    DecodeError,
    EncodingError,
    ErrorHandler,
    S3LiteError,
    SigningError,
    TransportError,
)
from s3_lite.listing import BucketListing, ObjectEntry, parse_bucket_listing
from s3_lite.response import LazyText, ResponseEnvelope
from s3_lite.signing import SignedRequest, Signer, http_date, string_to_sign
from s3_lite.transport import HttpRequest, InsecureRequestsTransport, RequestsTransport
from s3_lite.zone import FileZone

__all__ = [
    # Client
    "S3Client",
    "FileZone",
    # Configuration
    "StoreConfig",
    "Credentials",
    # Signing
    "Signer",
    "SignedRequest",
    "http_date",
    "string_to_sign",
    # Responses
    "ResponseEnvelope",
    "LazyText",
    "BucketListing",
    "ObjectEntry",
    "parse_bucket_listing",
    # Transport
    "HttpRequest",
    "RequestsTransport",
    "InsecureRequestsTransport",
    # Errors
    "ErrorHandler",
    "S3LiteError",
    "ConfigurationError",
    "EncodingError",
    "SigningError",
    "TransportError",
    "DecodeError",
]
