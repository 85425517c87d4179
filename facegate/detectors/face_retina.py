"""RetinaFace detection with per-face capture measurements."""

from __future__ import annotations

import logging
import os
import platform
from typing import Any, Optional, Tuple

import cv2
import numpy as np

from facegate.types import BBox, FaceObservation

LOGGER = logging.getLogger("facegate.detectors.face")


def default_providers() -> Tuple[str, ...]:
    """Choose default ONNX providers based on platform."""
    system = platform.system()
    machine = platform.machine().lower()
    if system == "Darwin" and machine in {"arm64", "aarch64"}:
        return ("CoreMLExecutionProvider", "CPUExecutionProvider")
    return ("CPUExecutionProvider",)


class RetinaFaceDetector:
    """Wrapper around InsightFace RetinaFace returning the dominant face.

    ``detect`` picks the highest-scoring face above ``det_thresh`` and
    measures sharpness and brightness on its crop so validation never has to
    touch pixels again.
    """

    def __init__(
        self,
        providers: Optional[Tuple[str, ...]] = None,
        det_size: Tuple[int, int] = (640, 640),
        det_thresh: float = 0.5,
        sharpness_ceiling: float = 300.0,
        app: Optional[Any] = None,
    ) -> None:
        self.det_size = tuple(det_size)
        self.det_thresh = det_thresh
        self.sharpness_ceiling = max(float(sharpness_ceiling), 1e-6)
        self.providers = tuple(providers) if providers is not None else default_providers()
        if app is None:
            app = self._load_app()
        self.app = app

    def _load_app(self) -> Any:
        os.environ.setdefault("OMP_NUM_THREADS", "2")
        os.environ.setdefault("ORT_INTRA_OP_NUM_THREADS", "2")
        try:
            from insightface.app import FaceAnalysis
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "insightface is required for RetinaFaceDetector. "
                "Install it via `pip install insightface`."
            ) from exc

        app = FaceAnalysis(name="buffalo_l", allowed_modules=["detection"], providers=list(self.providers))
        app.prepare(ctx_id=0, det_size=self.det_size)
        LOGGER.info(
            "Loaded RetinaFace detector det_size=%s det_thresh=%.2f providers=%s",
            self.det_size,
            self.det_thresh,
            self.providers,
        )
        return app

    def detect(self, image: np.ndarray) -> Optional[FaceObservation]:
        """Return the strongest face in ``image`` or None.

        Backend failures are logged and reported as "no face".
        """
        try:
            faces = self.app.get(image)
        except Exception as exc:
            LOGGER.warning("Face detection failed: %s", exc)
            return None

        best = None
        best_score = self.det_thresh
        for face in faces or []:
            score = float(face.det_score)
            if score < best_score:
                continue
            best = face
            best_score = score
        if best is None:
            return None

        bbox = tuple(float(v) for v in best.bbox)
        kps = getattr(best, "kps", None)
        landmarks = np.asarray(kps, dtype=np.float32) if kps is not None else None
        crop = crop_to_bbox(image, bbox)  # type: ignore[arg-type]
        return FaceObservation(
            bbox=bbox,  # type: ignore[arg-type]
            score=best_score,
            landmarks=landmarks,
            capture_quality=self.capture_quality(crop),
            brightness=mean_brightness(crop),
        )

    def capture_quality(self, crop: Optional[np.ndarray]) -> Optional[float]:
        """Map Laplacian variance of the crop into [0, 1]."""
        if crop is None or crop.size == 0:
            return None
        sharpness = laplacian_sharpness(crop)
        return float(np.clip(sharpness / self.sharpness_ceiling, 0.0, 1.0))

    def reset(self) -> None:
        # RetinaFace is stateless between frames.
        return None


def crop_to_bbox(image: np.ndarray, bbox: BBox) -> Optional[np.ndarray]:
    """Crop ``bbox`` out of ``image``; None when the box misses the image."""
    height, width = image.shape[:2]
    x1, y1, x2, y2 = [int(round(v)) for v in bbox]
    x1, x2 = max(0, x1), min(width, x2)
    y1, y2 = max(0, y1), min(height, y2)
    if x2 <= x1 or y2 <= y1:
        return None
    return image[y1:y2, x1:x2]


def laplacian_sharpness(image: np.ndarray) -> float:
    gray = image if image.ndim == 2 else cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())


def mean_brightness(image: Optional[np.ndarray]) -> Optional[float]:
    """Average luma of ``image`` in [0, 1]."""
    if image is None or image.size == 0:
        return None
    gray = image if image.ndim == 2 else cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return float(np.mean(gray) / 255.0)
