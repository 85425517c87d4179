"""JSON-over-HTTP client for the verification backend.

Every backend response is wrapped in an envelope::

    {"success": true, "data": {...}, "code": null, "message": null}

``HttpClient.send`` unwraps it and maps every failure, transport or backend,
onto a coded ``VerificationError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import requests

from facegate.errors import BackendError, ErrorCode, TransportError, VerificationError

LOGGER = logging.getLogger("facegate.network.http")


class ApiPaths:
    VERIFY = "/employees/verify"
    REGISTER = "/add-employee"
    EMPLOYEES = "/employees"

    @staticmethod
    def clock_in(employee_id: str) -> str:
        return f"/clock/{employee_id}/in"

    @staticmethod
    def clock_out(employee_id: str) -> str:
        return f"/clock/{employee_id}/out"

    @staticmethod
    def clock_status(employee_id: str) -> str:
        return f"/clock/{employee_id}/status"


class HttpClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def send(
        self,
        method: str,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Optional[str]]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Optional[Any]:
        """Issue a request and return the envelope's ``data`` field."""
        url = self.url_for(path)
        params = {k: v for k, v in (query or {}).items() if v is not None}
        merged_headers = {"Accept": "application/json", **(headers or {})}
        kwargs: Dict[str, Any] = {"params": params or None, "headers": merged_headers, "timeout": self.timeout}
        if body is not None:
            kwargs["json"] = dict(body)

        try:
            response = self.session.request(method, url, **kwargs)
        except (requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema, requests.exceptions.InvalidURL) as exc:
            raise TransportError(ErrorCode.BAD_URL, debug_message=url, cause=exc) from exc
        except requests.exceptions.Timeout as exc:
            raise TransportError(ErrorCode.REQUEST_TIMED_OUT, debug_message=url, cause=exc) from exc
        except requests.exceptions.ConnectionError as exc:
            raise TransportError(ErrorCode.NETWORK_UNAVAILABLE, debug_message=url, cause=exc) from exc
        except requests.exceptions.RequestException as exc:
            raise VerificationError(ErrorCode.UNKNOWN, debug_message=url, cause=exc) from exc

        LOGGER.debug("%s %s -> %s", method, url, response.status_code)
        return self._unwrap(response, url)

    @staticmethod
    def _unwrap(response: requests.Response, url: str) -> Optional[Any]:
        try:
            envelope = response.json()
        except ValueError as exc:
            raise TransportError(
                ErrorCode.DECODING_FAILED,
                debug_message=f"{url} returned non-JSON body (status {response.status_code})",
                cause=exc,
            ) from exc

        if not isinstance(envelope, dict) or not isinstance(envelope.get("success"), bool):
            raise TransportError(
                ErrorCode.INVALID_RESPONSE,
                debug_message=f"{url} returned no response envelope (status {response.status_code})",
            )

        if envelope["success"]:
            return envelope.get("data")

        code = ErrorCode.from_backend(envelope.get("code"))
        raise BackendError(code, debug_message=envelope.get("message"))
