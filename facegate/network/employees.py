"""Employee registration and lookup calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from facegate.errors import ErrorCode, TransportError
from facegate.network.http_client import ApiPaths, HttpClient
from facegate.types import Embedding

LOGGER = logging.getLogger("facegate.network.employees")

ADMIN_KEY_HEADER = "X-Admin-Key"


@dataclass(frozen=True)
class EmployeeResult:
    employee_id: str
    name: str
    role: str

    @classmethod
    def from_payload(cls, payload: Any) -> "EmployeeResult":
        if not isinstance(payload, dict):
            raise TransportError(ErrorCode.INVALID_RESPONSE, debug_message=f"employee entry is {type(payload).__name__}")
        try:
            return cls(
                employee_id=str(payload["employee_id"]),
                name=str(payload["name"]),
                role=str(payload["role"]),
            )
        except KeyError as exc:
            raise TransportError(
                ErrorCode.INVALID_RESPONSE,
                debug_message=f"employee entry missing {exc.args[0]!r}",
                cause=exc,
            ) from exc


class EmployeeRegistrationClient:
    """Registers an employee's identity and face embedding with the backend."""

    def __init__(self, http: HttpClient, admin_key: Optional[str] = None) -> None:
        self.http = http
        self.admin_key = admin_key

    def add_employee(self, employee_id: str, name: str, embedding: Embedding, role: str = "employee") -> None:
        payload = {
            "employee_id": employee_id,
            "name": name,
            "embedding": embedding.tolist(),
            "role": role,
        }
        headers = {ADMIN_KEY_HEADER: self.admin_key} if self.admin_key else None
        self.http.send("POST", ApiPaths.REGISTER, body=payload, headers=headers)
        LOGGER.info("Registered employee %s (%s)", employee_id, role)


class EmployeeLookupClient:
    def __init__(self, http: HttpClient) -> None:
        self.http = http

    def search(self, prefix: str) -> List[EmployeeResult]:
        """Employees whose id or name starts with ``prefix``; empty when the backend sends no data."""
        data = self.http.send("GET", ApiPaths.EMPLOYEES, query={"prefix": prefix})
        if data is None:
            return []
        if not isinstance(data, list):
            raise TransportError(ErrorCode.INVALID_RESPONSE, debug_message="employee search did not return a list")
        return [EmployeeResult.from_payload(item) for item in data]
