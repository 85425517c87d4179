from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from scripts import verify_stream


def test_parse_args_defaults() -> None:
    args = verify_stream.parse_args(["--employee-id", "emp-1"])
    assert args.employee_id == "emp-1"
    assert args.camera_index == 0
    assert args.video is None
    assert args.clock == "none"
    assert args.pipeline_config == Path("configs/pipeline.yaml")


def test_camera_and_video_are_exclusive() -> None:
    with pytest.raises(SystemExit):
        verify_stream.parse_args(["--camera-index", "1", "--video", "clip.mp4"])


def test_cli_overrides_config(tmp_path: Path) -> None:
    args = verify_stream.parse_args(
        [
            "--pipeline-config",
            str(tmp_path / "missing.yaml"),
            "--backend-url",
            "https://verify.example.com",
            "--timeout",
            "0",
            "--providers",
            "CPUExecutionProvider",
            "--arcface-model",
            "~/models/w600k_r50.onnx",
        ]
    )
    config = verify_stream.resolve_config(args)
    assert config.backend.base_url == "https://verify.example.com"
    assert config.backend.request_timeout_s is None
    assert config.detector.providers == ("CPUExecutionProvider",)
    assert config.processor.model_path == "~/models/w600k_r50.onnx"


def test_write_config_exits_without_loading_models(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(*_args, **_kwargs):
        raise AssertionError("models must not load for --write-config")

    monkeypatch.setattr(verify_stream, "RetinaFaceDetector", _fail)
    out = tmp_path / "effective.yaml"
    rc = verify_stream.main(
        [
            "--pipeline-config",
            str(tmp_path / "missing.yaml"),
            "--timeout",
            "4.5",
            "--write-config",
            str(out),
        ]
    )
    assert rc == 0
    written = yaml.safe_load(out.read_text(encoding="utf-8"))
    assert written["backend"]["request_timeout_s"] == 4.5
    assert written["collector"]["window_seconds"] == 0.8


def test_recording_reporter_keeps_codes() -> None:
    from facegate.errors import BackendError, ErrorCode

    reporter = verify_stream.RecordingErrorReporter()
    reporter.report(BackendError(ErrorCode.DB_ERROR))
    assert reporter.codes == ["DB_ERROR"]


def test_remaining_budget_bounds_final_wait() -> None:
    assert verify_stream.remaining_budget(100.0, 30.0, now=110.0) == pytest.approx(20.0)
    assert verify_stream.remaining_budget(100.0, 30.0, now=200.0) == 0.0


def test_recording_reporter_flags_transport_codes() -> None:
    from facegate.errors import ErrorCode, TransportError

    reporter = verify_stream.RecordingErrorReporter()
    reporter.report(TransportError(ErrorCode.REQUEST_TIMED_OUT))
    assert [code.is_transport for code in reporter.codes] == [True]
