"""Common dataclasses and type aliases used across the facegate package."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple

import numpy as np

# Bounding box order: x1, y1, x2, y2 (pixel coordinates)
BBox = Tuple[float, float, float, float]
Point = Tuple[float, float]


@dataclass(frozen=True)
class Frame:
    """A single image delivered by the camera collaborator."""

    image: np.ndarray
    timestamp: float = field(default_factory=time.monotonic)
    index: int = -1


@dataclass(frozen=True)
class FaceObservation:
    """Detector output for a single face.

    Landmarks follow the five-point InsightFace order: left eye, right eye,
    nose tip, left mouth corner, right mouth corner. ``capture_quality`` and
    ``brightness`` are in [0, 1] and None when the detector could not measure
    the crop.
    """

    bbox: BBox
    score: float
    landmarks: Optional[np.ndarray] = None
    capture_quality: Optional[float] = None
    brightness: Optional[float] = None

    @property
    def left_eye(self) -> Optional[Point]:
        return self._landmark(0)

    @property
    def right_eye(self) -> Optional[Point]:
        return self._landmark(1)

    @property
    def nose(self) -> Optional[Point]:
        return self._landmark(2)

    def _landmark(self, idx: int) -> Optional[Point]:
        if self.landmarks is None:
            return None
        points = np.asarray(self.landmarks)
        if points.ndim != 2 or points.shape[0] <= idx:
            return None
        return float(points[idx][0]), float(points[idx][1])


@dataclass(frozen=True)
class FaceCandidate:
    """A validated face plus the frame it came from and its quality score."""

    face: Any
    frame: Frame
    quality: float


class Embedding:
    """L2-normalized face embedding.

    The raw vector is divided by its L2 norm on construction; an all-zero
    vector is kept as-is.
    """

    __slots__ = ("values",)

    def __init__(self, raw: Sequence[float] | np.ndarray) -> None:
        vec = np.asarray(raw, dtype=np.float32).reshape(-1)
        self.values: np.ndarray = l2_normalize(vec)

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def __repr__(self) -> str:
        return f"Embedding(dim={len(self)}, norm={self.norm:.4f})"

    @property
    def norm(self) -> float:
        return float(np.linalg.norm(self.values))

    def tolist(self) -> list:
        return [float(v) for v in self.values]


def l2_normalize(vec: np.ndarray, eps: float = 0.0) -> np.ndarray:
    """L2-normalize the input vector; vectors with norm <= eps are returned unchanged."""
    norm = float(np.linalg.norm(vec))
    if norm <= eps:
        return vec
    return vec / norm

