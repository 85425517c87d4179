from __future__ import annotations

import pytest
import requests

from facegate.errors import BackendError, ErrorCode, TransportError, VerificationError
from facegate.network.http_client import ApiPaths, HttpClient


class _StubResponse:
    def __init__(self, payload=None, status_code: int = 200, invalid_json: bool = False) -> None:
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


class _StubSession:
    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _client(response=None, error=None, timeout=10.0):
    session = _StubSession(response=response, error=error)
    return HttpClient("http://backend.local/api/", session=session, timeout=timeout), session


def test_success_returns_data_and_sends_json() -> None:
    client, session = _client(_StubResponse({"success": True, "data": {"ok": 1}, "code": None, "message": None}))
    data = client.send("POST", ApiPaths.VERIFY, body={"employee_id": "e1"}, query={"dry": None, "v": "2"})
    assert data == {"ok": 1}
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == "http://backend.local/api/employees/verify"
    assert kwargs["json"] == {"employee_id": "e1"}
    assert kwargs["params"] == {"v": "2"}
    assert kwargs["timeout"] == 10.0


def test_success_without_data_returns_none() -> None:
    client, _ = _client(_StubResponse({"success": True}))
    assert client.send("GET", "/ping") is None


@pytest.mark.parametrize(
    "backend_code, expected",
    [
        ("EMPLOYEE_NOT_FOUND", ErrorCode.EMPLOYEE_NOT_FOUND),
        ("FACE_CONFIDENCE_TOO_LOW", ErrorCode.FACE_CONFIDENCE_TOO_LOW),
        ("db_error", ErrorCode.DB_ERROR),
        ("SOMETHING_NEW", ErrorCode.UNKNOWN),
        (None, ErrorCode.UNKNOWN),
    ],
)
def test_backend_failure_maps_code(backend_code, expected) -> None:
    payload = {"success": False, "data": None, "code": backend_code, "message": "nope"}
    client, _ = _client(_StubResponse(payload, status_code=400))
    with pytest.raises(BackendError) as excinfo:
        client.send("POST", ApiPaths.VERIFY, body={})
    assert excinfo.value.code is expected
    assert excinfo.value.debug_message == "nope"


def test_non_json_body_is_decoding_failure() -> None:
    client, _ = _client(_StubResponse(invalid_json=True, status_code=502))
    with pytest.raises(TransportError) as excinfo:
        client.send("GET", "/x")
    assert excinfo.value.code is ErrorCode.DECODING_FAILED


@pytest.mark.parametrize("payload", [[1, 2], {"data": {}}, {"success": "yes"}])
def test_missing_envelope_is_invalid_response(payload) -> None:
    client, _ = _client(_StubResponse(payload))
    with pytest.raises(TransportError) as excinfo:
        client.send("GET", "/x")
    assert excinfo.value.code is ErrorCode.INVALID_RESPONSE


@pytest.mark.parametrize(
    "error, expected",
    [
        (requests.exceptions.ConnectTimeout("slow"), ErrorCode.REQUEST_TIMED_OUT),
        (requests.exceptions.ReadTimeout("slow"), ErrorCode.REQUEST_TIMED_OUT),
        (requests.exceptions.ConnectionError("down"), ErrorCode.NETWORK_UNAVAILABLE),
        (requests.exceptions.MissingSchema("no scheme"), ErrorCode.BAD_URL),
        (requests.exceptions.InvalidURL("bad"), ErrorCode.BAD_URL),
    ],
)
def test_transport_failures_are_mapped(error, expected) -> None:
    client, _ = _client(error=error)
    with pytest.raises(TransportError) as excinfo:
        client.send("POST", ApiPaths.VERIFY, body={})
    assert excinfo.value.code is expected
    assert excinfo.value.code.is_transport
    assert excinfo.value.cause is error


def test_other_request_errors_are_unknown() -> None:
    client, _ = _client(error=requests.exceptions.TooManyRedirects("loop"))
    with pytest.raises(VerificationError) as excinfo:
        client.send("GET", "/x")
    assert excinfo.value.code is ErrorCode.UNKNOWN


def test_url_for_joins_slashes() -> None:
    client = HttpClient("http://h:1/", session=_StubSession())
    assert client.url_for("/a/b") == "http://h:1/a/b"
    assert client.url_for("a") == "http://h:1/a"
