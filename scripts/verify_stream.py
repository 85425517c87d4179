#!/usr/bin/env python3
"""CLI for verifying an employee against a live camera or a recorded video."""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from facegate.analysis.analyzer import FaceAnalyzer
from facegate.analysis.validator import FaceValidator
from facegate.camera.feeds import CameraFeed, VideoFileFeed
from facegate.collection.collector import FrameCollector
from facegate.config import PipelineConfig, load_pipeline_config
from facegate.detectors.face_retina import RetinaFaceDetector
from facegate.errors import ErrorCode, VerificationError, as_verification_error
from facegate.io_utils import dump_json, dump_yaml, setup_logging
from facegate.network.http_client import HttpClient
from facegate.network.time_tracking import TimeTrackingClient
from facegate.network.verification import FaceVerificationClient
from facegate.recognition.embed_arcface import ArcFaceEmbedder
from facegate.recognition.preprocess import FacePreprocessor
from facegate.recognition.processor import FaceProcessor
from facegate.verification.orchestrator import VerificationOrchestrator
from facegate.verification.reporting import LoggingErrorReporter
from facegate.verification.state import Matched

LOGGER = logging.getLogger("scripts.verify_stream")


class RecordingErrorReporter(LoggingErrorReporter):
    """Logs failures and keeps their codes for the session report."""

    def __init__(self) -> None:
        self.codes: List[ErrorCode] = []

    def report(self, error: VerificationError) -> None:
        self.codes.append(error.code)
        super().report(error)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify an employee's face against the backend")
    parser.add_argument("--employee-id", type=str, default=None, help="Employee identifier to verify against")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--camera-index", type=int, default=0, help="Capture device index (default 0)")
    source.add_argument("--video", type=Path, default=None, help="Replay a video file instead of a camera")
    parser.add_argument(
        "--pipeline-config",
        type=Path,
        default=Path("configs/pipeline.yaml"),
        help="Path to pipeline configuration YAML",
    )
    parser.add_argument("--backend-url", type=str, default=None, help="Override backend base URL")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Verification request timeout in seconds (0 disables the timeout)",
    )
    parser.add_argument(
        "--providers",
        type=str,
        nargs="+",
        default=None,
        help="ONNX Runtime execution providers, in priority order",
    )
    parser.add_argument("--arcface-model", type=str, default=None, help="Path or model-zoo name of the ArcFace model")
    parser.add_argument(
        "--clock",
        choices=("in", "out", "none"),
        default="none",
        help="Clock the employee in or out after a successful match",
    )
    parser.add_argument(
        "--max-seconds",
        type=float,
        default=30.0,
        help="Give up if no match happens within this many seconds (default 30)",
    )
    parser.add_argument(
        "--fast",
        action="store_true",
        help="Replay --video as fast as possible instead of at its native frame rate",
    )
    parser.add_argument("--report", type=Path, default=None, help="Write a JSON session summary here")
    parser.add_argument(
        "--write-config",
        type=Path,
        default=None,
        help="Write the effective pipeline config as YAML and exit",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> PipelineConfig:
    """Layer CLI overrides on top of the YAML config."""
    config = load_pipeline_config(args.pipeline_config)
    if args.backend_url:
        config.backend.base_url = args.backend_url
    if args.timeout is not None:
        config.backend.request_timeout_s = args.timeout if args.timeout > 0 else None
    if args.providers:
        config.detector.providers = tuple(args.providers)
    if args.arcface_model:
        config.processor.model_path = args.arcface_model
    return config


def remaining_budget(started_at: float, max_seconds: float, now: Optional[float] = None) -> float:
    """Seconds left before the ``--max-seconds`` deadline, never negative."""
    current = time.monotonic() if now is None else now
    return max(0.0, max_seconds - (current - started_at))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    config = resolve_config(args)
    if args.write_config is not None:
        dump_yaml(args.write_config, config.to_dict())
        LOGGER.info("Wrote effective config to %s", args.write_config)
        return 0

    if not args.employee_id:
        LOGGER.warning("No --employee-id given; every selected face will fail with EMPLOYEE_NOT_FOUND")

    detector = RetinaFaceDetector(
        providers=config.detector.providers,
        det_size=config.detector.det_size,
        det_thresh=config.detector.det_thresh,
        sharpness_ceiling=config.quality.sharpness_ceiling,
    )
    analyzer = FaceAnalyzer(detector, FaceValidator(config.validator), config.quality)
    embedder = ArcFaceEmbedder(model_path=config.processor.model_path, providers=config.detector.providers)
    processor = FaceProcessor(embedder, FacePreprocessor(config.processor.output_size))
    http = HttpClient(config.backend.base_url, timeout=config.backend.request_timeout_s)
    verifier = FaceVerificationClient(http)

    if args.video is not None:
        feed = VideoFileFeed(args.video, realtime=not args.fast)
    else:
        feed = CameraFeed(args.camera_index)

    reporter = RecordingErrorReporter()
    orchestrator = VerificationOrchestrator(
        analyzer=analyzer,
        processor=processor,
        verifier=verifier,
        employee_id=args.employee_id,
        error_reporter=reporter,
        collector=FrameCollector(config.collector),
        frame_source=feed,
    )

    LOGGER.info(
        "Runtime config: backend=%s timeout=%s window=%.2fs high_water=%.2f source=%s",
        config.backend.base_url,
        config.backend.request_timeout_s,
        config.collector.window_seconds,
        config.collector.high_water_mark,
        args.video or f"camera:{args.camera_index}",
    )

    started_at = time.monotonic()
    if not orchestrator.start():
        return 1

    is_video = isinstance(feed, VideoFileFeed)
    progress = tqdm(total=getattr(feed, "frame_count", 0) or None, unit="frame", disable=not is_video)
    matched_name: Optional[str] = None
    try:
        while True:
            if orchestrator.wait_until(lambda s: isinstance(s, Matched), timeout=0.2):
                matched_name = orchestrator.state.name  # type: ignore[union-attr]
                break
            progress.update(feed.frames_delivered - progress.n)
            if is_video and not feed.running:
                # Let the last admitted frame finish before giving up.
                orchestrator.join(timeout=remaining_budget(started_at, args.max_seconds))
                state = orchestrator.state
                if isinstance(state, Matched):
                    matched_name = state.name
                break
            if time.monotonic() - started_at > args.max_seconds:
                LOGGER.warning("No match within %.1fs; giving up", args.max_seconds)
                break
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
    finally:
        progress.close()
        orchestrator.stop()

    clock_status = None
    if matched_name and args.clock != "none":
        clock = TimeTrackingClient(http)
        try:
            status = clock.clock_in(matched_name) if args.clock == "in" else clock.clock_out(matched_name)
        except Exception as exc:
            reporter.report(as_verification_error(exc))
        else:
            clock_status = {
                "is_clocked_in": status.is_clocked_in,
                "clock_in_time": status.clock_in_time.isoformat() if status.clock_in_time else None,
            }
            LOGGER.info("Clock %s recorded for %s: %s", args.clock, matched_name, clock_status)

    if args.report is not None:
        dump_json(
            args.report,
            {
                "employee_id": args.employee_id,
                "matched": matched_name is not None,
                "errors": [code.value for code in reporter.codes],
                "transport_failures": sum(1 for code in reporter.codes if code.is_transport),
                "frames_delivered": feed.frames_delivered,
                "elapsed_s": round(time.monotonic() - started_at, 3),
                "clock": clock_status,
            },
        )

    if matched_name:
        LOGGER.info("Verified %s", matched_name)
        return 0
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
