"""Embedding extraction from a single still photo, for enrolment."""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np

from facegate.analysis.analyzer import FaceDetecting
from facegate.errors import ErrorCode, VerificationError
from facegate.recognition.processor import FaceProcessing
from facegate.types import Embedding

LOGGER = logging.getLogger("facegate.recognition.registration")


def load_image(path: Path) -> np.ndarray:
    """Read a BGR image from disk."""
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise VerificationError(ErrorCode.PIXEL_BUFFER_MISSING, debug_message=f"unable to read image {path}")
    return image


class RegistrationEmbedder:
    """Detects the dominant face in a photo and embeds it.

    Uses the same detector and processor as live verification so enrolled
    and live embeddings come from identical preprocessing. Photos are not
    put through pose or lighting validation.
    """

    def __init__(self, detector: FaceDetecting, processor: FaceProcessing) -> None:
        self.detector = detector
        self.processor = processor

    def embedding(self, image: np.ndarray) -> Embedding:
        face = self.detector.detect(image)
        if face is None:
            raise VerificationError(ErrorCode.FACE_VALIDATION_FAILED, debug_message="no face found in photo")
        LOGGER.debug("Registration face score=%.3f bbox=%s", face.score, face.bbox)
        return self.processor.process(image, face)
