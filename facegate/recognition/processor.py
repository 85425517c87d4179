"""Winner frame → normalized embedding."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import numpy as np

from facegate.errors import ErrorCode, ModelOutputError
from facegate.recognition.embed_arcface import EmbeddingModel
from facegate.recognition.preprocess import FacePreprocessor
from facegate.types import Embedding, FaceObservation

LOGGER = logging.getLogger("facegate.recognition.processor")


class FaceProcessing(Protocol):
    def process(self, image: np.ndarray, face: FaceObservation) -> Embedding:
        ...


class FaceProcessor:
    """Preprocesses a face crop and runs the embedding model on it.

    Raises ``PreprocessingError`` when the crop cannot be produced and
    ``ModelOutputError`` when the model gives back nothing usable.
    """

    def __init__(self, model: EmbeddingModel, preprocessor: Optional[FacePreprocessor] = None) -> None:
        self.model = model
        self.preprocessor = preprocessor or FacePreprocessor()

    def process(self, image: np.ndarray, face: FaceObservation) -> Embedding:
        if image is None or getattr(image, "size", 0) == 0:
            raise ModelOutputError(ErrorCode.PIXEL_BUFFER_MISSING, debug_message="winner frame has no pixels")
        aligned = self.preprocessor.preprocess(image, face)

        try:
            raw = self.model.get_feat(aligned)
        except Exception as exc:
            raise ModelOutputError(debug_message="embedding inference failed", cause=exc) from exc
        if raw is None:
            raise ModelOutputError(debug_message="embedding model returned no output")

        try:
            vec = np.asarray(raw, dtype=np.float32).reshape(-1)
        except (TypeError, ValueError) as exc:
            raise ModelOutputError(debug_message="embedding output is not numeric", cause=exc) from exc
        if vec.size == 0:
            raise ModelOutputError(debug_message="embedding output is empty")
        if not np.all(np.isfinite(vec)):
            raise ModelOutputError(debug_message="embedding output contains non-finite values")

        embedding = Embedding(vec)
        LOGGER.debug("Computed embedding dim=%d", len(embedding))
        return embedding
