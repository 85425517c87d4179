"""Observable states of a verification session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from facegate.errors import ErrorCode


@dataclass(frozen=True)
class Detecting:
    """Searching the feed for a valid face."""

    def __str__(self) -> str:
        return "Detecting"


@dataclass(frozen=True)
class Processing:
    """A winner was picked; embedding and backend verification are running."""

    def __str__(self) -> str:
        return "Processing"


@dataclass(frozen=True)
class Matched:
    name: str

    def __str__(self) -> str:
        return f"Matched({self.name})"


@dataclass(frozen=True)
class TimedOut:
    def __str__(self) -> str:
        return "TimedOut"


@dataclass(frozen=True)
class Error:
    reason: ErrorCode

    def __str__(self) -> str:
        return f"Error({self.reason.value})"


VerificationState = Union[Detecting, Processing, Matched, TimedOut, Error]
