"""Decoding of S3 XML response bodies.

Covers the ListObjectsV2 result, the service-level bucket list and error
bodies. Elements may or may not carry the S3 namespace.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional

from s3_lite.errors import DecodeError

S3_NS = "http://s3.amazonaws.com/doc/2006-03-01/"

LIST_BUCKET_RESULT = "ListBucketResult"
LIST_ALL_MY_BUCKETS_RESULT = "ListAllMyBucketsResult"


@dataclass(frozen=True)
class ObjectEntry:
    """One ``Contents`` element of a bucket listing."""

    key: Optional[str] = None
    last_modified: Optional[str] = None
    etag: Optional[str] = None
    size: Optional[int] = None
    storage_class: Optional[str] = None


@dataclass(frozen=True)
class BucketListing:
    """Read-only projection of a ``ListBucketResult`` body."""

    name: Optional[str] = None
    prefix: Optional[str] = None
    continuation_token: Optional[str] = None
    key_count: int = 0
    max_keys: int = 0
    delimiter: Optional[str] = None
    truncated: bool = False
    entries: tuple[ObjectEntry, ...] = ()

    @property
    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries if entry.key is not None]


def _local_name(tag: str) -> str:
    """Remove namespace from tag."""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _text(element: ET.Element, name: str) -> Optional[str]:
    found = _children(element, name)
    if not found:
        return None
    return found[0].text or ""


def _int(element: ET.Element, name: str, default: Optional[int]) -> Optional[int]:
    value = _text(element, name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        raise DecodeError(f"{name} is not an integer: {value!r}") from None


def _bool(element: ET.Element, name: str) -> bool:
    value = _text(element, name)
    if value is None or not value.strip():
        return False
    normalized = value.strip().lower()
    if normalized not in ("true", "false"):
        raise DecodeError(f"{name} is not a boolean: {value!r}")
    return normalized == "true"


def _parse_root(text: str, expected: str) -> ET.Element:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise DecodeError(f"Malformed XML: {e}") from e
    if _local_name(root.tag) != expected:
        raise DecodeError(f"Expected {expected} root element, got {_local_name(root.tag)}")
    return root


def parse_bucket_listing(text: str) -> BucketListing:
    """Decode a ListObjectsV2 response body.

    Raises:
        DecodeError: malformed XML, wrong root element, or a non-numeric
            KeyCount/MaxKeys/Size.
    """
    root = _parse_root(text, LIST_BUCKET_RESULT)

    entries = tuple(
        ObjectEntry(
            key=_text(contents, "Key"),
            last_modified=_text(contents, "LastModified"),
            etag=_text(contents, "ETag"),
            size=_int(contents, "Size", None),
            storage_class=_text(contents, "StorageClass"),
        )
        for contents in _children(root, "Contents")
    )

    return BucketListing(
        name=_text(root, "Name"),
        prefix=_text(root, "Prefix"),
        continuation_token=_text(root, "NextContinuationToken"),
        key_count=_int(root, "KeyCount", 0),
        max_keys=_int(root, "MaxKeys", 0),
        delimiter=_text(root, "Delimiter"),
        truncated=_bool(root, "IsTruncated"),
        entries=entries,
    )


def parse_bucket_names(text: str) -> list[str]:
    """Decode bucket names from a ListBuckets (``GET /``) response body."""
    root = _parse_root(text, LIST_ALL_MY_BUCKETS_RESULT)
    names = []
    for buckets in _children(root, "Buckets"):
        for bucket in _children(buckets, "Bucket"):
            name = _text(bucket, "Name")
            if name:
                names.append(name)
    return names


def extract_error_code(xml_body: str) -> Optional[str]:
    """Extract error code from S3 XML error response."""
    if not xml_body or "<Error" not in xml_body:
        return None
    try:
        root = ET.fromstring(xml_body)
    except ET.ParseError:
        return None
    if _local_name(root.tag) != "Error":
        return None
    return _text(root, "Code") or None
