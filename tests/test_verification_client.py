from __future__ import annotations

import numpy as np
import pytest

from facegate.errors import BackendError, ErrorCode
from facegate.network.verification import FaceVerificationClient
from facegate.types import Embedding


class _StubHttp:
    def __init__(self, error=None) -> None:
        self.error = error
        self.calls = []

    def send(self, method, path, body=None, query=None):
        self.calls.append((method, path, body))
        if self.error is not None:
            raise self.error
        return None


def test_verify_posts_employee_and_embedding() -> None:
    http = _StubHttp()
    FaceVerificationClient(http).verify("emp-7", Embedding(np.array([0.0, 2.0])))
    method, path, body = http.calls[0]
    assert (method, path) == ("POST", "/employees/verify")
    assert body["employee_id"] == "emp-7"
    assert body["embedding"] == pytest.approx([0.0, 1.0])


def test_verify_propagates_rejection_without_retry() -> None:
    http = _StubHttp(error=BackendError(ErrorCode.FACE_CONFIDENCE_TOO_LOW))
    with pytest.raises(BackendError) as excinfo:
        FaceVerificationClient(http).verify("emp-7", Embedding([1.0]))
    assert excinfo.value.code is ErrorCode.FACE_CONFIDENCE_TOO_LOW
    assert len(http.calls) == 1
