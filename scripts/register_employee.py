#!/usr/bin/env python3
"""CLI for enrolling an employee from a photo, or searching enrolled employees."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from facegate.config import load_pipeline_config
from facegate.detectors.face_retina import RetinaFaceDetector
from facegate.errors import VerificationError
from facegate.io_utils import setup_logging
from facegate.network.employees import EmployeeLookupClient, EmployeeRegistrationClient
from facegate.network.http_client import HttpClient
from facegate.recognition.embed_arcface import ArcFaceEmbedder
from facegate.recognition.preprocess import FacePreprocessor
from facegate.recognition.processor import FaceProcessor
from facegate.recognition.registration import RegistrationEmbedder, load_image

LOGGER = logging.getLogger("scripts.register_employee")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register an employee's face with the backend")
    parser.add_argument("--search", type=str, default=None, help="List employees whose id or name starts with PREFIX and exit")
    parser.add_argument("--employee-id", type=str, default=None, help="Identifier of the employee to register")
    parser.add_argument("--name", type=str, default=None, help="Display name of the employee")
    parser.add_argument("--role", type=str, default="employee", help="Role stored with the employee (default employee)")
    parser.add_argument("--photo", type=Path, default=None, help="Still photo containing the employee's face")
    parser.add_argument(
        "--admin-key",
        type=str,
        default=os.environ.get("FACEGATE_ADMIN_KEY"),
        help="Admin key sent with registration requests (default $FACEGATE_ADMIN_KEY)",
    )
    parser.add_argument(
        "--pipeline-config",
        type=Path,
        default=Path("configs/pipeline.yaml"),
        help="Path to pipeline configuration YAML",
    )
    parser.add_argument("--backend-url", type=str, default=None, help="Override backend base URL")
    parser.add_argument("--arcface-model", type=str, default=None, help="Path or model-zoo name of the ArcFace model")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    args = parser.parse_args(argv)
    if args.search is None:
        missing = [flag for flag, value in (("--employee-id", args.employee_id), ("--name", args.name), ("--photo", args.photo)) if not value]
        if missing:
            parser.error(f"registration requires {', '.join(missing)}")
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    config = load_pipeline_config(args.pipeline_config)
    if args.backend_url:
        config.backend.base_url = args.backend_url
    if args.arcface_model:
        config.processor.model_path = args.arcface_model
    http = HttpClient(config.backend.base_url, timeout=config.backend.request_timeout_s)

    try:
        if args.search is not None:
            results = EmployeeLookupClient(http).search(args.search)
            LOGGER.info("%d employee(s) match %r", len(results), args.search)
            for employee in results:
                print(f"{employee.employee_id}\t{employee.name}\t{employee.role}")
            return 0

        detector = RetinaFaceDetector(
            providers=config.detector.providers,
            det_size=config.detector.det_size,
            det_thresh=config.detector.det_thresh,
            sharpness_ceiling=config.quality.sharpness_ceiling,
        )
        embedder = ArcFaceEmbedder(model_path=config.processor.model_path, providers=config.detector.providers)
        processor = FaceProcessor(embedder, FacePreprocessor(config.processor.output_size))
        embedding = RegistrationEmbedder(detector, processor).embedding(load_image(args.photo))
        EmployeeRegistrationClient(http, admin_key=args.admin_key).add_employee(
            args.employee_id, args.name, embedding, role=args.role
        )
    except VerificationError as exc:
        LOGGER.error("%s | %s", exc.code.value, exc.user_message)
        LOGGER.debug("Failure detail: %s", exc, exc_info=exc.cause)
        return 1

    LOGGER.info("Registered %s from %s", args.employee_id, args.photo)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
