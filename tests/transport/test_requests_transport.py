"""Tests for the requests-backed transport, using a fake session."""

import gzip
import io
import logging

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from urllib3.response import HTTPResponse

from s3_lite.client import build_transport
from s3_lite.config import StoreConfig
from s3_lite.errors import TransportError
from s3_lite.transport import HttpRequest, InsecureRequestsTransport, RequestsTransport, describe_request


def make_response(status: int, content: bytes = b"", headers: dict = None) -> requests.Response:
    raw = HTTPResponse(
        body=io.BytesIO(content),
        headers=headers or {},
        status=status,
        preload_content=False,
        decode_content=False,
    )
    response = requests.Response()
    response.status_code = status
    response.raw = raw
    response.headers = CaseInsensitiveDict(headers or {})
    return response


class FakeSession:
    """Stands in for requests.Session, recording each call."""

    def __init__(self, response=None, error=None):
        self.calls = []
        self._response = response
        self._error = error

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self._error is not None:
            raise self._error
        return self._response


@pytest.mark.operation("execute")
class TestRequestsTransport:
    def test_request_construction(self, errors):
        session = FakeSession(make_response(200))
        transport = RequestsTransport("https://store.example/minio/", session=session, timeout=5)
        request = HttpRequest(
            method="PUT",
            path="/b/o",
            headers={"Date": "d", "Authorization": "AWS AK:sig"},
            body=[b"chunk"],
            content_type="text/plain",
            accept="*/*",
        )

        transport.execute(request, errors)

        call = session.calls[0]
        assert call["method"] == "PUT"
        assert call["url"] == "https://store.example/minio/b/o"
        assert call["headers"] == {
            "Date": "d",
            "Authorization": "AWS AK:sig",
            "Content-Type": "text/plain",
            "Accept": "*/*",
        }
        assert call["data"] == [b"chunk"]
        assert call["stream"] is True
        assert call["verify"] is True
        assert call["timeout"] == 5
        assert call["params"] is None

    def test_query_parameters_passed(self, errors):
        session = FakeSession(make_response(200))
        RequestsTransport("https://s", session=session).execute(
            HttpRequest("GET", "/b", params={"list-type": "2"}), errors
        )
        assert session.calls[0]["params"] == {"list-type": "2"}

    def test_body_kept_compressed_for_envelope(self, errors):
        payload = gzip.compress(b"<ListBucketResult/>")
        session = FakeSession(make_response(200, payload, {"Content-Encoding": "gzip"}))

        envelope = RequestsTransport("https://s", session=session).execute(HttpRequest("GET", "/b"), errors)

        assert envelope.status_code == 200
        assert envelope.header("content-encoding") == ["gzip"]
        assert envelope.response_text(errors) == "<ListBucketResult/>"

    def test_error_status_routes_to_error_stream(self, errors):
        body = b"<Error><Code>NoSuchBucket</Code></Error>"
        session = FakeSession(make_response(404, body))

        envelope = RequestsTransport("https://s", session=session).execute(HttpRequest("GET", "/b"), errors)

        assert envelope.response_text() == ""
        assert envelope.error_code() == "NoSuchBucket"
        assert not envelope.is_valid()

    def test_streaming_keeps_raw_stream(self, errors):
        response = make_response(200, b"streamed object")
        session = FakeSession(response)

        envelope = RequestsTransport("https://s", session=session).execute(
            HttpRequest("GET", "/b/o", stream=True), errors
        )

        assert envelope.stream() is response.raw
        assert envelope.stream().read() == b"streamed object"

    def test_connection_failure_reported(self, errors):
        session = FakeSession(error=requests.ConnectionError("refused"))

        envelope = RequestsTransport("https://s", session=session).execute(HttpRequest("HEAD", "/b"), errors)

        assert envelope is None
        assert errors.types() == [TransportError]
        assert errors.errors[0].status_code is None


@pytest.mark.operation("execute")
class TestInsecureTransport:
    def test_verification_disabled_and_announced(self, errors, caplog):
        session = FakeSession(make_response(200))

        with caplog.at_level(logging.WARNING, logger="s3_lite.transport"):
            transport = InsecureRequestsTransport("https://self-signed.local", session=session)
        transport.execute(HttpRequest("GET", "/"), errors)

        assert session.calls[0]["verify"] is False
        assert "DISABLED" in caplog.text

    def test_secure_by_default(self):
        config = StoreConfig("https://store.example", "AK", "SK")
        transport = build_transport(config)
        assert type(transport) is RequestsTransport
        assert transport.verify is True

    def test_insecure_only_on_request(self):
        config = StoreConfig("https://store.example", "AK", "SK", insecure_tls=True)
        assert isinstance(build_transport(config), InsecureRequestsTransport)


class TestDescribeRequest:
    def test_authorization_redacted(self):
        request = HttpRequest(
            "PUT",
            "/b/o",
            headers={"Authorization": "AWS AK:secret-signature", "Date": "d"},
            body=[b"x"],
            content_type="text/plain",
        )

        info = describe_request(request)

        assert info["headers"]["Authorization"] == "[REDACTED]"
        assert info["headers"]["Date"] == "d"
        assert info["headers"]["Content-Type"] == "text/plain"
        assert info["has_body"] is True
        assert "secret-signature" not in str(info)
