"""Quality-windowed best-frame collector."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Tuple

from facegate.config import CollectorConfig
from facegate.types import FaceCandidate

LOGGER = logging.getLogger("facegate.collection.collector")

# Progress of 1.0 is reserved for calls that emit a winner.
_MAX_PENDING_PROGRESS = 0.99


class FrameCollector:
    """Tracks the best candidate inside a bounded time window.

    A window opens on the first candidate after a reset. It closes, emitting
    its best candidate, as soon as a candidate reaches the high-water mark or
    once more than ``window_seconds`` have elapsed since it opened. All state
    is guarded by one lock so ``process`` and ``reset`` never interleave.
    """

    def __init__(
        self,
        config: Optional[CollectorConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CollectorConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._start_time: Optional[float] = None
        self._best: Optional[FaceCandidate] = None

    @property
    def start_time(self) -> Optional[float]:
        with self._lock:
            return self._start_time

    @property
    def best(self) -> Optional[FaceCandidate]:
        with self._lock:
            return self._best

    @property
    def progress(self) -> float:
        with self._lock:
            if self._start_time is None:
                return 0.0
            return self._pending_progress(self._clock() - self._start_time)

    def process(self, candidate: FaceCandidate) -> Tuple[Optional[FaceCandidate], float]:
        """Feed one candidate; return ``(winner, progress)``."""
        with self._lock:
            now = self._clock()
            if self._start_time is None or self._best is None:
                self._start_time = now
                self._best = candidate
            elif candidate.quality > self._best.quality:
                self._best = candidate

            elapsed = max(0.0, now - self._start_time)
            if candidate.quality >= self.config.high_water_mark:
                winner = self._best
                LOGGER.debug(
                    "High-water exit: quality=%.3f winner=%.3f after %.3fs",
                    candidate.quality,
                    winner.quality,
                    elapsed,
                )
                self._clear()
                return winner, 1.0

            if elapsed > self.config.window_seconds:
                winner = self._best
                LOGGER.debug("Window expired after %.3fs; winner quality=%.3f", elapsed, winner.quality)
                self._clear()
                return winner, 1.0

            return None, self._pending_progress(elapsed)

    def reset(self) -> None:
        with self._lock:
            self._clear()

    def _clear(self) -> None:
        self._start_time = None
        self._best = None

    def _pending_progress(self, elapsed: float) -> float:
        window = max(self.config.window_seconds, 1e-6)
        return min(max(elapsed, 0.0) / window, _MAX_PENDING_PROGRESS)
