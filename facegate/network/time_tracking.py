"""Clock-in / clock-out calls made after a successful verification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from facegate.errors import ErrorCode, TransportError
from facegate.network.http_client import ApiPaths, HttpClient


@dataclass(frozen=True)
class ClockStatus:
    is_clocked_in: bool
    clock_in_time: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ClockStatus":
        if not isinstance(payload, dict) or "is_clocked_in" not in payload:
            raise TransportError(ErrorCode.INVALID_RESPONSE, debug_message="clock status payload missing")
        raw_time = payload.get("clock_in_time")
        clock_in_time = None
        if raw_time:
            try:
                clock_in_time = datetime.fromisoformat(str(raw_time).replace("Z", "+00:00"))
            except ValueError as exc:
                raise TransportError(
                    ErrorCode.DECODING_FAILED,
                    debug_message=f"bad clock_in_time {raw_time!r}",
                    cause=exc,
                ) from exc
        return cls(is_clocked_in=bool(payload["is_clocked_in"]), clock_in_time=clock_in_time)


class TimeTrackingClient:
    def __init__(self, http: HttpClient) -> None:
        self.http = http

    def clock_in(self, employee_id: str) -> ClockStatus:
        return ClockStatus.from_payload(self.http.send("POST", ApiPaths.clock_in(employee_id)))

    def clock_out(self, employee_id: str) -> ClockStatus:
        return ClockStatus.from_payload(self.http.send("POST", ApiPaths.clock_out(employee_id)))

    def get_status(self, employee_id: str) -> ClockStatus:
        return ClockStatus.from_payload(self.http.send("GET", ApiPaths.clock_status(employee_id)))
