"""Small helpers shared by the client and the file-zone adapter."""

import io
from typing import BinaryIO, Iterator, Union
from urllib.parse import quote

from s3_lite.errors import EncodingError

UPLOAD_BUFFER_SIZE = 4096


def url_encode_key(key: Union[str, bytes], safe: str = "") -> str:
    """URL-encode a bucket name or object key as UTF-8.

    Handles both string and bytes keys (for non-UTF-8 keys).

    Raises:
        EncodingError: key is not text/bytes, or is text that has no UTF-8
            encoding (lone surrogates).
    """
    if isinstance(key, str):
        try:
            key = key.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncodingError(f"Cannot UTF-8 encode {key!r}: {e}") from e
    elif not isinstance(key, bytes):
        raise EncodingError(f"Cannot URL-encode {type(key).__name__} value {key!r}")
    return quote(key, safe=safe)


def as_stream(source: Union[bytes, bytearray, BinaryIO]) -> BinaryIO:
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source)
    return source


def iter_chunks(source: BinaryIO, chunk_size: int = UPLOAD_BUFFER_SIZE) -> Iterator[bytes]:
    """Yield ``source`` in chunks of at most ``chunk_size`` bytes.

    Read failures surface as OSError so the transport treats them like a
    broken connection.
    """
    while True:
        try:
            chunk = source.read(chunk_size)
        except ValueError as e:
            raise OSError(f"Cannot read upload source: {e}") from e
        if not chunk:
            return
        yield chunk


def copy_stream(source: BinaryIO, destination: BinaryIO, chunk_size: int) -> int:
    """Copy ``source`` into ``destination``; return the number of bytes copied."""
    copied = 0
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return copied
        destination.write(chunk)
        copied += len(chunk)
