"""ArcFace embedding model loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence, Tuple

import numpy as np

from facegate.detectors.face_retina import default_providers
from facegate.errors import ModelLoadError
from facegate.recognition.preprocess import to_nchw

LOGGER = logging.getLogger("facegate.recognition.embed")


class EmbeddingModel(Protocol):
    def get_feat(self, aligned_face: np.ndarray) -> Any:
        ...


class OnnxArcFace:
    """Runs a local ArcFace ``.onnx`` file directly through ONNX Runtime."""

    def __init__(self, model_path: Path, providers: Sequence[str], session: Optional[Any] = None) -> None:
        if session is None:
            import onnxruntime as ort

            session = ort.InferenceSession(str(model_path), providers=list(providers))
        self.session = session
        self.input_name = session.get_inputs()[0].name
        LOGGER.info("ONNX Runtime session for %s using %s", model_path, session.get_providers())

    def get_feat(self, aligned_face: np.ndarray) -> np.ndarray:
        blob = to_nchw(aligned_face)
        return self.session.run(None, {self.input_name: blob})[0]


class ArcFaceEmbedder:
    """Loads an ArcFace ONNX model for embedding extraction.

    A path to an existing ``.onnx`` file is opened with ONNX Runtime
    directly; anything else is resolved through the InsightFace model zoo,
    falling back to the ``buffalo_l`` recognition model. Construct once per
    process and share it; the underlying ONNX session is the expensive part.
    """

    def __init__(self, model_path: Optional[str] = None, providers: Optional[Sequence[str]] = None) -> None:
        os.environ.setdefault("OMP_NUM_THREADS", "2")
        os.environ.setdefault("ORT_INTRA_OP_NUM_THREADS", "2")
        provider_list: Tuple[str, ...] = tuple(providers) if providers is not None else default_providers()
        self.providers = provider_list

        local = Path(model_path).expanduser() if model_path else None
        try:
            if local is not None and local.suffix == ".onnx" and local.is_file():
                self.model: Any = OnnxArcFace(local, provider_list)
            else:
                self.model = self._load_from_zoo(str(local) if local else "arcface_r100_v1", provider_list)
        except ModelLoadError:
            raise
        except Exception as exc:
            raise ModelLoadError(debug_message=f"failed to load {model_path or 'arcface_r100_v1'}", cause=exc) from exc

    @staticmethod
    def _load_from_zoo(name: str, providers: Tuple[str, ...]) -> Any:
        try:
            from insightface.model_zoo import get_model
        except ImportError as exc:  # pragma: no cover - import guard
            raise ModelLoadError(
                debug_message="insightface is required for ArcFaceEmbedder; install it via `pip install insightface`",
                cause=exc,
            ) from exc

        LOGGER.info("Loading ArcFace model %s providers=%s", name, providers)
        model = get_model(name, download=True, providers=list(providers))
        if model is None:
            LOGGER.info("Falling back to FaceAnalysis recognition model")
            from insightface.app import FaceAnalysis

            analysis = FaceAnalysis(name="buffalo_l", providers=list(providers))
            analysis.prepare(ctx_id=0)
            model = analysis.models.get("recognition")
        if model is None:
            raise ModelLoadError(debug_message=f"no recognition model available for {name}")
        if hasattr(model, "prepare"):
            model.prepare(ctx_id=0)
        return model

    def get_feat(self, aligned_face: np.ndarray) -> np.ndarray:
        """Return the raw (unnormalized) feature vector for a 112x112 BGR crop."""
        feat = self.model.get_feat(aligned_face)
        return np.asarray(feat, dtype=np.float32).reshape(-1)
