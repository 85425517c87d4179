"""Detection + validation folded into a single per-frame call."""

from __future__ import annotations

import logging
import math
from typing import Optional, Protocol, Tuple

import numpy as np

from facegate.analysis.validator import FaceValidator, estimate_pose
from facegate.config import QualityConfig
from facegate.types import FaceObservation

LOGGER = logging.getLogger("facegate.analysis.analyzer")


class FaceDetecting(Protocol):
    def detect(self, image: np.ndarray) -> Optional[FaceObservation]:
        ...

    def reset(self) -> None:
        ...


class FaceAnalyzing(Protocol):
    def analyze(self, image: np.ndarray) -> Optional[Tuple[FaceObservation, float]]:
        ...

    def reset(self) -> None:
        ...


class FaceAnalyzer:
    """Produces a (face, quality) pair only for detectable, valid faces.

    Quality blends the detector's capture score with how frontal the pose is,
    so the collector can rank candidates on a single number.
    """

    def __init__(
        self,
        detector: FaceDetecting,
        validator: Optional[FaceValidator] = None,
        quality: Optional[QualityConfig] = None,
    ) -> None:
        self.detector = detector
        self.validator = validator or FaceValidator()
        self.quality = quality or QualityConfig()

    def analyze(self, image: np.ndarray) -> Optional[Tuple[FaceObservation, float]]:
        try:
            face = self.detector.detect(image)
        except Exception as exc:
            LOGGER.warning("Detector raised during analysis: %s", exc)
            return None
        if face is None:
            return None

        reason = self.validator.rejection_reason(face)
        if reason is not None:
            return None
        return face, self.score_quality(face)

    def score_quality(self, face: FaceObservation) -> float:
        w_capture, w_pose = self.quality.weights
        total = max(w_capture + w_pose, 1e-6)
        raw = face.capture_quality
        capture = float(np.clip(raw, 0.0, 1.0)) if raw is not None and math.isfinite(raw) else 0.0
        pose_score = self._pose_score(face)
        quality = (w_capture * capture + w_pose * pose_score) / total
        if not math.isfinite(quality):
            return 0.0
        return float(np.clip(quality, 0.0, 1.0))

    def _pose_score(self, face: FaceObservation) -> float:
        cfg = self.validator.config
        pose = estimate_pose(face, cfg.yaw_scale_deg)
        if pose is None:
            return 0.0
        roll_ratio = abs(pose.roll_deg) / max(cfg.max_roll_deg, 1e-6)
        yaw_ratio = abs(pose.yaw_deg) / max(cfg.max_yaw_deg, 1e-6)
        return float(np.clip(1.0 - max(roll_ratio, yaw_ratio), 0.0, 1.0))

    def reset(self) -> None:
        self.detector.reset()
