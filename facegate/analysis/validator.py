"""Geometric and photometric validation of detected faces."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from facegate.config import ValidatorConfig
from facegate.types import FaceObservation

LOGGER = logging.getLogger("facegate.analysis.validator")


@dataclass(frozen=True)
class FacePose:
    roll_deg: float
    yaw_deg: float


def estimate_pose(face: FaceObservation, yaw_scale_deg: float = 90.0) -> Optional[FacePose]:
    """Estimate roll and a yaw proxy from the eye and nose landmarks.

    Roll is the angle of the inter-ocular line. Yaw is the nose offset from
    the eye midpoint along that line, as a fraction of the eye distance,
    multiplied by ``yaw_scale_deg``.
    """
    left_eye, right_eye, nose = face.left_eye, face.right_eye, face.nose
    if left_eye is None or right_eye is None or nose is None:
        return None

    left = np.asarray(left_eye, dtype=np.float64)
    right = np.asarray(right_eye, dtype=np.float64)
    if right[0] < left[0]:
        left, right = right, left
    axis = right - left
    eye_dist = float(np.linalg.norm(axis))
    if eye_dist < 1e-6:
        return None

    roll = math.degrees(math.atan2(axis[1], axis[0]))
    unit = axis / eye_dist
    midpoint = (left + right) / 2.0
    offset = float(np.dot(np.asarray(nose, dtype=np.float64) - midpoint, unit)) / eye_dist
    return FacePose(roll_deg=roll, yaw_deg=offset * yaw_scale_deg)


class FaceValidator:
    """Rejects faces that are too rotated, badly lit or blurry."""

    def __init__(self, config: Optional[ValidatorConfig] = None) -> None:
        self.config = config or ValidatorConfig()

    def rejection_reason(self, face: FaceObservation) -> Optional[str]:
        """Return why ``face`` fails validation, or None when it passes."""
        cfg = self.config
        pose = estimate_pose(face, cfg.yaw_scale_deg)
        if pose is None:
            LOGGER.debug("Rejected: missing eye/nose landmarks")
            return "rejected_landmarks"

        if abs(pose.roll_deg) > cfg.max_roll_deg + cfg.angle_epsilon_deg:
            LOGGER.debug("Rejected: roll too high (%.1f° > %.1f°)", abs(pose.roll_deg), cfg.max_roll_deg)
            return "rejected_roll"

        if abs(pose.yaw_deg) > cfg.max_yaw_deg + cfg.angle_epsilon_deg:
            LOGGER.debug("Rejected: yaw too high (%.1f° > %.1f°)", abs(pose.yaw_deg), cfg.max_yaw_deg)
            return "rejected_yaw"

        brightness = face.brightness
        if brightness is None or not (cfg.min_brightness <= brightness <= cfg.max_brightness):
            LOGGER.debug(
                "Rejected: brightness %s outside [%.2f, %.2f]",
                "n/a" if brightness is None else f"{brightness:.3f}",
                cfg.min_brightness,
                cfg.max_brightness,
            )
            return "rejected_brightness"

        quality = face.capture_quality
        if quality is None or not math.isfinite(quality) or quality < cfg.min_capture_quality:
            LOGGER.debug(
                "Rejected: capture quality %s < %.2f",
                "n/a" if quality is None else f"{quality:.3f}",
                cfg.min_capture_quality,
            )
            return "rejected_sharpness"

        return None

    def is_valid(self, face: FaceObservation) -> bool:
        return self.rejection_reason(face) is None
