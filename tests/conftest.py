from __future__ import annotations

from typing import Optional

import numpy as np
import pytest

from facegate.types import FaceCandidate, FaceObservation, Frame


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_face(
    left_eye=(40.0, 50.0),
    right_eye=(72.0, 50.0),
    nose=(56.0, 70.0),
    brightness: Optional[float] = 0.5,
    capture_quality: Optional[float] = 0.8,
    bbox=(20.0, 20.0, 92.0, 110.0),
) -> FaceObservation:
    landmarks = np.array(
        [left_eye, right_eye, nose, (44.0, 90.0), (68.0, 90.0)],
        dtype=np.float32,
    )
    return FaceObservation(
        bbox=bbox,
        score=0.95,
        landmarks=landmarks,
        capture_quality=capture_quality,
        brightness=brightness,
    )


def make_candidate(quality: float, index: int = 0) -> FaceCandidate:
    frame = Frame(image=np.zeros((8, 8, 3), dtype=np.uint8), timestamp=0.0, index=index)
    return FaceCandidate(face=make_face(), frame=frame, quality=quality)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
