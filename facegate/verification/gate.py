"""Single-admission flag for the frame-intake gate."""

from __future__ import annotations

import threading


class AtomicFlag:
    """Boolean with an atomic test-and-set."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = False

    @property
    def is_set(self) -> bool:
        with self._lock:
            return self._value

    def test_and_set(self) -> bool:
        """Set the flag; return True only if it was clear before."""
        with self._lock:
            if self._value:
                return False
            self._value = True
            return True

    def clear(self) -> None:
        with self._lock:
            self._value = False
