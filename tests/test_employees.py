from __future__ import annotations

import numpy as np
import pytest

from facegate.errors import ErrorCode, TransportError, VerificationError
from facegate.network.employees import EmployeeLookupClient, EmployeeRegistrationClient, EmployeeResult
from facegate.network.http_client import HttpClient
from facegate.recognition.registration import RegistrationEmbedder, load_image
from facegate.types import Embedding, FaceObservation


class _StubResponse:
    def __init__(self, payload) -> None:
        self.payload = payload
        self.status_code = 200

    def json(self):
        return self.payload


class _StubSession:
    def __init__(self, payload) -> None:
        self.payload = payload
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return _StubResponse(self.payload)


def _http(data):
    session = _StubSession({"success": True, "data": data, "code": None, "message": None})
    return HttpClient("http://backend.local", session=session), session


def test_add_employee_posts_record_with_admin_key() -> None:
    http, session = _http(None)
    client = EmployeeRegistrationClient(http, admin_key="s3cret")
    client.add_employee("A123", "Jon Snider", Embedding([0.0, 3.0, 4.0]), role="manager")

    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == "http://backend.local/add-employee"
    body = kwargs["json"]
    assert set(body) == {"employee_id", "name", "embedding", "role"}
    assert body["employee_id"] == "A123"
    assert body["name"] == "Jon Snider"
    assert body["role"] == "manager"
    assert body["embedding"] == pytest.approx([0.0, 0.6, 0.8])
    assert kwargs["headers"]["X-Admin-Key"] == "s3cret"


def test_add_employee_without_admin_key_sends_no_header() -> None:
    http, session = _http(None)
    EmployeeRegistrationClient(http).add_employee("A1", "Ann", Embedding([1.0]))
    headers = session.calls[0][2]["headers"]
    assert "X-Admin-Key" not in headers
    assert session.calls[0][2]["json"]["role"] == "employee"


def test_search_sends_prefix_and_parses_results() -> None:
    http, session = _http(
        [
            {"employee_id": "A123", "name": "Jon Snider", "role": "employee"},
            {"employee_id": "A124", "name": "Ann Lee", "role": "manager"},
        ]
    )
    results = EmployeeLookupClient(http).search("A12")
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", "http://backend.local/employees")
    assert kwargs["params"] == {"prefix": "A12"}
    assert results == [
        EmployeeResult("A123", "Jon Snider", "employee"),
        EmployeeResult("A124", "Ann Lee", "manager"),
    ]


def test_search_with_null_data_is_empty() -> None:
    http, _ = _http(None)
    assert EmployeeLookupClient(http).search("zz") == []


@pytest.mark.parametrize("data", [{"employee_id": "A1"}, [{"employee_id": "A1"}], ["A1"]])
def test_malformed_search_payload_is_invalid_response(data) -> None:
    http, _ = _http(data)
    with pytest.raises(TransportError) as excinfo:
        EmployeeLookupClient(http).search("A")
    assert excinfo.value.code is ErrorCode.INVALID_RESPONSE


class _StubDetector:
    def __init__(self, face) -> None:
        self.face = face

    def detect(self, image):
        return self.face

    def reset(self) -> None:
        pass


class _StubProcessor:
    def __init__(self) -> None:
        self.calls = []

    def process(self, image, face):
        self.calls.append((image, face))
        return Embedding(np.ones(4))


def test_registration_embeds_detected_face() -> None:
    face = FaceObservation(bbox=(10.0, 10.0, 90.0, 90.0), score=0.99)
    processor = _StubProcessor()
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    embedding = RegistrationEmbedder(_StubDetector(face), processor).embedding(image)
    assert embedding.norm == pytest.approx(1.0)
    assert processor.calls[0][0] is image
    assert processor.calls[0][1] is face


def test_registration_without_face_fails_validation() -> None:
    processor = _StubProcessor()
    with pytest.raises(VerificationError) as excinfo:
        RegistrationEmbedder(_StubDetector(None), processor).embedding(np.zeros((10, 10, 3), dtype=np.uint8))
    assert excinfo.value.code is ErrorCode.FACE_VALIDATION_FAILED
    assert processor.calls == []


def test_unreadable_photo_is_missing_pixels(tmp_path) -> None:
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"not an image")
    with pytest.raises(VerificationError) as excinfo:
        load_image(path)
    assert excinfo.value.code is ErrorCode.PIXEL_BUFFER_MISSING
