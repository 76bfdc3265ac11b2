"""HTTP response envelope with lazily decoded, cached body and error text."""

import gzip
import re
import zlib
from typing import BinaryIO, Callable, Collection, Iterable, Mapping, Optional, Union

from requests.structures import CaseInsensitiveDict

from s3_lite.errors import DecodeError, ErrorHandler, TransportError, ignore_error
from s3_lite.listing import extract_error_code

HTTP_OK = 200
HTTP_NO_CONTENT = 204

CONTENT_ENCODING = "Content-Encoding"
GZIP = "gzip"

LINE_SEPARATOR = "\n"
_LINE_BREAK = re.compile(r"\r\n|\r|\n")

_UNSET = object()


class LazyText:
    """Write-once cell for decoded text.

    The first ``get`` computes and stores the value; every later call returns
    it without recomputing, whatever ``compute`` is passed. There is no lock:
    the cell belongs to the single thread that owns its envelope.
    """

    def __init__(self):
        self._value = _UNSET

    @property
    def is_set(self) -> bool:
        return self._value is not _UNSET

    def get(self, compute: Callable[[], str]) -> str:
        if self._value is _UNSET:
            self._value = compute()
        return self._value


def join_lines(text: str) -> str:
    """Split on any line terminator and rejoin with ``LINE_SEPARATOR``.

    A trailing terminator does not produce an extra empty line.
    """
    lines = _LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    return LINE_SEPARATOR.join(lines)


def decode_text(stream: BinaryIO, gzipped: bool, on_error: ErrorHandler) -> str:
    """Read ``stream`` to the end, gunzip if asked, then decode as UTF-8.

    Returns "" after reporting a DecodeError when any step fails.
    """
    try:
        if gzipped:
            with gzip.GzipFile(fileobj=stream) as gz:
                raw = gz.read()
        else:
            raw = stream.read()
        text = raw.decode("utf-8")
    except (OSError, EOFError, zlib.error) as e:
        on_error(DecodeError(f"Cannot read response stream: {e}"))
        return ""
    except UnicodeDecodeError as e:
        on_error(DecodeError(f"Response is not valid UTF-8: {e}"))
        return ""
    return join_lines(text)


def _header_values(headers: Optional[Mapping]) -> CaseInsensitiveDict:
    normalized = CaseInsensitiveDict()
    for name, value in (headers or {}).items():
        if isinstance(value, str):
            normalized[name] = [value]
        else:
            normalized[name] = list(value)
    return normalized


class ResponseEnvelope:
    """One completed HTTP round trip.

    ``headers`` maps each header name (case-insensitively, in arrival order)
    to the list of its values. ``body`` and ``error`` are binary streams; at
    most one of them is normally present.
    """

    def __init__(
        self,
        status_code: int,
        headers: Optional[Mapping[str, Union[str, Iterable[str]]]] = None,
        body: Optional[BinaryIO] = None,
        error: Optional[BinaryIO] = None,
        closer: Optional[Callable[[], None]] = None,
    ):
        self.status_code = status_code
        self.headers = _header_values(headers)
        self._body = body
        self._error = error
        self._closer = closer
        self._body_text = LazyText()
        self._error_text = LazyText()

    def __repr__(self):
        return f"<ResponseEnvelope [{self.status_code}]>"

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def header(self, name: str) -> list[str]:
        return self.headers.get(name, [])

    def is_gzipped(self) -> bool:
        return GZIP in self.header(CONTENT_ENCODING)

    def is_valid(
        self,
        on_error: Optional[ErrorHandler] = None,
        expected: Union[int, Collection[int]] = HTTP_OK,
    ) -> bool:
        """Return True if the status is the one expected for the operation.

        Any other status is reported to ``on_error`` as a TransportError
        carrying the S3 error code, when the error body has one.
        """
        expected_codes = (expected,) if isinstance(expected, int) else tuple(expected)
        if self.status_code in expected_codes:
            return True

        if on_error is not None:
            error_text = self.error_text(on_error)
            error_code = extract_error_code(error_text)
            message = f"Unexpected HTTP status {self.status_code}"
            if error_code:
                message = f"{message} ({error_code})"
            on_error(TransportError(message, status_code=self.status_code, error_code=error_code))
        return False

    def error_code(self) -> Optional[str]:
        """S3 error code from the error body, if any."""
        return extract_error_code(self.error_text())

    def response_text(self, on_error: ErrorHandler = ignore_error) -> str:
        """Decoded body text; "" when there is no body or decoding failed."""
        return self._read_and_cache(self._body, self._body_text, on_error)

    def error_text(self, on_error: ErrorHandler = ignore_error) -> str:
        """Decoded error text; "" when there is no error body or decoding failed."""
        return self._read_and_cache(self._error, self._error_text, on_error)

    def stream(self) -> Optional[BinaryIO]:
        """The undecoded body stream, for streaming consumers."""
        return self._body

    def close(self) -> None:
        if self._closer is not None:
            closer, self._closer = self._closer, None
            closer()

    def _read_and_cache(self, stream: Optional[BinaryIO], cell: LazyText, on_error: ErrorHandler) -> str:
        if stream is None:
            return ""
        return cell.get(lambda: decode_text(stream, self.is_gzipped(), on_error))
