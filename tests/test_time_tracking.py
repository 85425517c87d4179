from __future__ import annotations

from datetime import datetime, timezone

import pytest

from facegate.errors import ErrorCode, TransportError
from facegate.network.time_tracking import ClockStatus, TimeTrackingClient


class _StubHttp:
    def __init__(self, data) -> None:
        self.data = data
        self.calls = []

    def send(self, method, path, body=None, query=None):
        self.calls.append((method, path))
        return self.data


def test_clock_in_parses_status() -> None:
    http = _StubHttp({"is_clocked_in": True, "clock_in_time": "2024-05-01T08:30:00Z"})
    status = TimeTrackingClient(http).clock_in("emp-1")
    assert http.calls == [("POST", "/clock/emp-1/in")]
    assert status.is_clocked_in
    assert status.clock_in_time == datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)


def test_clock_out_and_status_paths() -> None:
    http = _StubHttp({"is_clocked_in": False, "clock_in_time": None})
    client = TimeTrackingClient(http)
    assert client.clock_out("emp-1") == ClockStatus(is_clocked_in=False)
    client.get_status("emp-1")
    assert http.calls == [("POST", "/clock/emp-1/out"), ("GET", "/clock/emp-1/status")]


def test_missing_payload_is_invalid_response() -> None:
    with pytest.raises(TransportError) as excinfo:
        TimeTrackingClient(_StubHttp(None)).get_status("emp-1")
    assert excinfo.value.code is ErrorCode.INVALID_RESPONSE


def test_bad_timestamp_is_decoding_failure() -> None:
    with pytest.raises(TransportError) as excinfo:
        ClockStatus.from_payload({"is_clocked_in": True, "clock_in_time": "yesterday"})
    assert excinfo.value.code is ErrorCode.DECODING_FAILED
