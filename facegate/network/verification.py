"""Backend face verification call."""

from __future__ import annotations

import logging
from typing import Protocol

from facegate.network.http_client import ApiPaths, HttpClient
from facegate.types import Embedding

LOGGER = logging.getLogger("facegate.network.verification")


class FaceVerifying(Protocol):
    def verify(self, employee_id: str, embedding: Embedding) -> None:
        ...


class FaceVerificationClient:
    """Asks the backend whether ``embedding`` belongs to ``employee_id``.

    Returns on a match. Raises ``BackendError`` with EMPLOYEE_NOT_FOUND or
    FACE_CONFIDENCE_TOO_LOW when the backend rejects, and ``TransportError``
    when the request itself failed. Never retries.
    """

    def __init__(self, http: HttpClient) -> None:
        self.http = http

    def verify(self, employee_id: str, embedding: Embedding) -> None:
        payload = {"employee_id": employee_id, "embedding": embedding.tolist()}
        self.http.send("POST", ApiPaths.VERIFY, body=payload)
        LOGGER.info("Backend verified employee %s", employee_id)
