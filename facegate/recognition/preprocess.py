"""Crop/align a detected face into the 112x112 BGR input ArcFace expects."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from facegate.errors import ErrorCode, PreprocessingError
from facegate.types import BBox, FaceObservation

LOGGER = logging.getLogger("facegate.recognition.preprocess")

# Five-point ArcFace reference landmarks for a 112x112 crop.
ARCFACE_TEMPLATE = np.array(
    [
        [38.2946, 51.6963],
        [73.5318, 51.5014],
        [56.0252, 71.7366],
        [41.5493, 92.3655],
        [70.7299, 92.2041],
    ],
    dtype=np.float32,
)


class FacePreprocessor:
    """Turns a frame plus face observation into a model-ready crop.

    Uses a similarity transform onto the ArcFace template when five landmarks
    are available, otherwise a scale-to-fill crop of the bounding box.
    """

    def __init__(self, output_size: Tuple[int, int] = (112, 112)) -> None:
        self.output_size = (int(output_size[0]), int(output_size[1]))

    def preprocess(self, image: np.ndarray, face: FaceObservation) -> np.ndarray:
        if image is None or image.ndim != 3 or image.size == 0:
            raise PreprocessingError(
                ErrorCode.FACE_PREPROCESSING_RENDER_FAILED,
                debug_message="frame is not an HxWx3 image",
            )
        roi = self._roi(image, face.bbox)

        aligned: Optional[np.ndarray] = None
        landmarks = face.landmarks
        if landmarks is not None and np.asarray(landmarks).shape == (5, 2):
            aligned = self._align(image, np.asarray(landmarks, dtype=np.float32))
        if aligned is None:
            aligned = self._crop_and_fill(image, roi)
        return self._render(aligned)

    def _roi(self, image: np.ndarray, bbox: BBox) -> Tuple[int, int, int, int]:
        height, width = image.shape[:2]
        x1, y1, x2, y2 = [int(round(v)) for v in bbox]
        x1, x2 = max(0, x1), min(width, x2)
        y1, y2 = max(0, y1), min(height, y2)
        if x2 - x1 <= 1 or y2 - y1 <= 1:
            raise PreprocessingError(
                ErrorCode.FACE_PREPROCESSING_RESIZE_FAILED,
                debug_message=f"face box {bbox} does not intersect a {width}x{height} frame",
            )
        return x1, y1, x2, y2

    def _align(self, image: np.ndarray, landmarks: np.ndarray) -> Optional[np.ndarray]:
        scale_x = self.output_size[0] / 112.0
        scale_y = self.output_size[1] / 112.0
        template = ARCFACE_TEMPLATE * np.array([scale_x, scale_y], dtype=np.float32)
        try:
            matrix = cv2.estimateAffinePartial2D(landmarks, template, method=cv2.LMEDS)[0]
        except cv2.error as exc:
            LOGGER.debug("Landmark alignment failed (%s); falling back to bbox crop", exc)
            return None
        if matrix is None:
            return None
        try:
            return cv2.warpAffine(image, matrix, self.output_size, borderValue=0.0)
        except cv2.error as exc:
            raise PreprocessingError(ErrorCode.FACE_PREPROCESSING_RENDER_FAILED, cause=exc) from exc

    def _crop_and_fill(self, image: np.ndarray, roi: Tuple[int, int, int, int]) -> np.ndarray:
        x1, y1, x2, y2 = roi
        crop = image[y1:y2, x1:x2]
        target_w, target_h = self.output_size
        src_h, src_w = crop.shape[:2]
        scale = max(target_w / src_w, target_h / src_h)
        new_w = max(target_w, int(round(src_w * scale)))
        new_h = max(target_h, int(round(src_h * scale)))
        try:
            resized = cv2.resize(crop, (new_w, new_h), interpolation=cv2.INTER_LANCZOS4)
        except cv2.error as exc:
            raise PreprocessingError(ErrorCode.FACE_PREPROCESSING_RESIZE_FAILED, cause=exc) from exc
        off_x = (new_w - target_w) // 2
        off_y = (new_h - target_h) // 2
        return resized[off_y : off_y + target_h, off_x : off_x + target_w]

    def _render(self, aligned: np.ndarray) -> np.ndarray:
        target_w, target_h = self.output_size
        if aligned.shape[:2] != (target_h, target_w) or aligned.ndim != 3 or aligned.shape[2] != 3:
            raise PreprocessingError(
                ErrorCode.FACE_PREPROCESSING_RENDER_FAILED,
                debug_message=f"aligned crop has shape {aligned.shape}",
            )
        if aligned.dtype != np.uint8:
            aligned = np.clip(aligned, 0, 255).astype(np.uint8)
        return np.ascontiguousarray(aligned)


def to_nchw(aligned: np.ndarray) -> np.ndarray:
    """Convert an aligned BGR uint8 crop into a (1, 3, H, W) RGB float32 blob.

    Pixels are mapped to roughly [-1, 1] with ``(x - 127.5) / 128``, the
    normalization ArcFace models are trained with.
    """
    arr = np.asarray(aligned)
    if arr.ndim != 3 or arr.shape[2] != 3 or arr.dtype != np.uint8:
        raise PreprocessingError(
            ErrorCode.FACE_PREPROCESSING_RENDER_FAILED,
            debug_message=f"expected HxWx3 uint8 crop, got shape={arr.shape} dtype={arr.dtype}",
        )
    rgb = arr[:, :, ::-1].astype(np.float32)
    chw = np.transpose(rgb, (2, 0, 1))
    return np.ascontiguousarray(((chw - 127.5) / 128.0)[np.newaxis, ...])
