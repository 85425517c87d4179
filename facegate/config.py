"""Tuning knobs for the verification pipeline.

Every threshold the pipeline uses lives here with its production default.
``configs/pipeline.yaml`` mirrors these sections; values missing from the YAML
fall back to the dataclass defaults.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from facegate.io_utils import load_yaml

LOGGER = logging.getLogger("facegate.config")

T = TypeVar("T")


@dataclass
class ValidatorConfig:
    max_roll_deg: float = 15.0
    max_yaw_deg: float = 15.0
    min_brightness: float = 0.25
    max_brightness: float = 0.85
    min_capture_quality: float = 0.2
    # Nose offset from the eye midpoint, as a fraction of inter-ocular
    # distance, is multiplied by this to get a yaw proxy in degrees.
    yaw_scale_deg: float = 90.0
    angle_epsilon_deg: float = 0.0002


@dataclass
class QualityConfig:
    # Weights for (capture quality, pose) in the combined score.
    weights: Tuple[float, float] = (0.7, 0.3)
    # Laplacian variance that maps to a capture quality of 1.0.
    sharpness_ceiling: float = 300.0


@dataclass
class DetectorConfig:
    det_size: Tuple[int, int] = (640, 640)
    det_thresh: float = 0.5
    providers: Optional[Tuple[str, ...]] = None


@dataclass
class CollectorConfig:
    window_seconds: float = 0.8
    high_water_mark: float = 0.9


@dataclass
class ProcessorConfig:
    output_size: Tuple[int, int] = (112, 112)
    model_path: Optional[str] = None


@dataclass
class BackendConfig:
    base_url: str = "http://localhost:8000"
    request_timeout_s: Optional[float] = 10.0


@dataclass
class PipelineConfig:
    validator: ValidatorConfig = field(default_factory=ValidatorConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    processor: ProcessorConfig = field(default_factory=ProcessorConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PipelineConfig":
        data = dict(data or {})
        sections = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in sections:
                LOGGER.warning("Ignoring unknown config section %r", key)
                continue
            section_type = _SECTION_TYPES[key]
            kwargs[key] = _build_section(section_type, value or {}, key)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        # Tuples become lists so the output is plain YAML.
        for section in payload.values():
            for key, value in list(section.items()):
                if isinstance(value, tuple):
                    section[key] = list(value)
        return payload


_SECTION_TYPES: Dict[str, Type[Any]] = {
    "validator": ValidatorConfig,
    "quality": QualityConfig,
    "detector": DetectorConfig,
    "collector": CollectorConfig,
    "processor": ProcessorConfig,
    "backend": BackendConfig,
}


def _build_section(section_type: Type[T], values: Dict[str, Any], name: str) -> T:
    if not isinstance(values, dict):
        raise ValueError(f"Config section {name!r} must be a mapping")
    known = {f.name for f in fields(section_type)}
    kwargs: Dict[str, Any] = {}
    for key, value in values.items():
        if key not in known:
            LOGGER.warning("Ignoring unknown config key %s.%s", name, key)
            continue
        if isinstance(value, list):
            value = tuple(value)
        kwargs[key] = value
    return section_type(**kwargs)


def load_pipeline_config(path: Optional[Path]) -> PipelineConfig:
    """Load a pipeline config from YAML, or return defaults when the file is absent."""
    if path is None:
        return PipelineConfig()
    path = Path(path)
    if not path.exists():
        LOGGER.info("Pipeline config %s not found; using defaults", path)
        return PipelineConfig()
    return PipelineConfig.from_dict(load_yaml(path))
