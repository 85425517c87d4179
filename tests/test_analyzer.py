from __future__ import annotations

import numpy as np
import pytest

from facegate.analysis.analyzer import FaceAnalyzer
from facegate.config import QualityConfig

from conftest import make_face


class _StubDetector:
    def __init__(self, face=None, error=None) -> None:
        self.face = face
        self.error = error
        self.calls = 0
        self.resets = 0

    def detect(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.face

    def reset(self) -> None:
        self.resets += 1


IMAGE = np.zeros((120, 120, 3), dtype=np.uint8)


def test_valid_face_yields_quality() -> None:
    analyzer = FaceAnalyzer(_StubDetector(make_face(capture_quality=0.8)))
    result = analyzer.analyze(IMAGE)
    assert result is not None
    face, quality = result
    assert face.score == pytest.approx(0.95)
    assert quality == pytest.approx(0.7 * 0.8 + 0.3 * 1.0)


def test_no_face_yields_none() -> None:
    assert FaceAnalyzer(_StubDetector(None)).analyze(IMAGE) is None


def test_invalid_face_yields_none() -> None:
    analyzer = FaceAnalyzer(_StubDetector(make_face(brightness=0.05)))
    assert analyzer.analyze(IMAGE) is None


def test_detector_failure_is_treated_as_no_face() -> None:
    analyzer = FaceAnalyzer(_StubDetector(error=RuntimeError("onnx exploded")))
    assert analyzer.analyze(IMAGE) is None


def test_off_axis_pose_lowers_quality() -> None:
    analyzer = FaceAnalyzer(_StubDetector())
    frontal = analyzer.score_quality(make_face())
    turned = analyzer.score_quality(make_face(nose=(60.0, 70.0)))
    assert 0.0 <= turned < frontal <= 1.0


def test_quality_weights_are_configurable() -> None:
    analyzer = FaceAnalyzer(_StubDetector(), quality=QualityConfig(weights=(1.0, 0.0)))
    assert analyzer.score_quality(make_face(capture_quality=0.4)) == pytest.approx(0.4)


def test_reset_forwards_to_detector() -> None:
    detector = _StubDetector()
    FaceAnalyzer(detector).reset()
    assert detector.resets == 1


def test_non_finite_capture_quality_never_yields_nan() -> None:
    analyzer = FaceAnalyzer(_StubDetector(make_face(capture_quality=float("nan"))))
    assert analyzer.analyze(IMAGE) is None
    score = analyzer.score_quality(make_face(capture_quality=float("nan")))
    assert score == pytest.approx(0.3)
    assert 0.0 <= analyzer.score_quality(make_face(capture_quality=float("inf"))) <= 1.0
