"""Error-reporting collaborators."""

from __future__ import annotations

import logging
from typing import Protocol

from facegate.errors import VerificationError

LOGGER = logging.getLogger("facegate.verification.errors")


class ErrorReporter(Protocol):
    def report(self, error: VerificationError) -> None:
        ...


class LoggingErrorReporter:
    """Writes each surfaced failure to the log with its user-facing message."""

    def report(self, error: VerificationError) -> None:
        LOGGER.error("%s | %s", error.code.value, error.user_message)
        if error.debug_message or error.cause is not None:
            LOGGER.debug("Failure detail: %s", error, exc_info=error.cause)
