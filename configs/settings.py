"""Configuration loading for the umpire pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from configs.validator import validate_config
from exceptions import ConfigError, InvalidConfigError
from log_config.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).with_name("default.yaml")

_DEFAULT_DETECTOR_TYPE = {"person": "hog", "ball": "motion"}


@dataclass(frozen=True)
class CameraConfig:
    source: str = "0"
    width: int = 1280
    height: int = 720
    fps: int = 120
    pixfmt: str = "BGR"
    rotation: str = "none"
    open_timeout_ms: int = 5000


@dataclass(frozen=True)
class PipelineConfig:
    sample_every_n_frames: int = 3
    unsampled_frame_policy: str = "skip"
    ball_selection_policy: str = "highest_confidence"
    detection_budget_ms: float = 100.0


@dataclass(frozen=True)
class StrikeZoneConfig:
    zone_width: float = 0.3
    knee_ratio: float = 0.3
    shoulder_ratio: float = 0.7


@dataclass(frozen=True)
class JudgeConfig:
    containment_mode: str = "fully_contained"


@dataclass(frozen=True)
class DetectorBackendConfig:
    type: str
    model_path: Optional[str] = None
    model_input_size: Tuple[int, int] = (640, 640)
    model_conf_threshold: float = 0.25
    model_class_id: Optional[int] = None
    model_format: str = "yolo_v5"
    min_confidence: float = 0.0
    frame_diff_threshold: float = 18.0
    bg_diff_threshold: float = 12.0
    bg_alpha: float = 0.08
    min_area: int = 12
    max_area: Optional[int] = None
    min_circularity: float = 0.1
    min_consecutive: int = 1
    runtime_budget_ms: float = 50.0
    boxes: Tuple[Tuple[float, ...], ...] = ()


@dataclass(frozen=True)
class DetectorConfig:
    person: DetectorBackendConfig = field(default_factory=lambda: DetectorBackendConfig(type="hog"))
    ball: DetectorBackendConfig = field(default_factory=lambda: DetectorBackendConfig(type="motion"))


@dataclass(frozen=True)
class AnnouncerConfig:
    type: str = "speech"
    language: str = "en-US"
    voice: Optional[str] = None
    command: Optional[Tuple[str, ...]] = None
    cooldown_ms: int = 1500
    queue_depth: int = 4


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    dir: Optional[str] = None


@dataclass(frozen=True)
class AppConfig:
    camera: CameraConfig = field(default_factory=CameraConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    strike_zone: StrikeZoneConfig = field(default_factory=StrikeZoneConfig)
    judge: JudgeConfig = field(default_factory=JudgeConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    announcer: AnnouncerConfig = field(default_factory=AnnouncerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _backend_config(role: str, data: Dict[str, Any]) -> DetectorBackendConfig:
    values = {f.name: data[f.name] for f in fields(DetectorBackendConfig) if f.name in data}
    values.setdefault("type", _DEFAULT_DETECTOR_TYPE[role])
    if "model_input_size" in values:
        values["model_input_size"] = tuple(values["model_input_size"])
    values["boxes"] = tuple(tuple(float(v) for v in box) for box in values.get("boxes", ()))
    return DetectorBackendConfig(**values)


def config_from_dict(data: Optional[Dict[str, Any]]) -> AppConfig:
    """Validate a configuration mapping and build an AppConfig.

    Missing sections and keys take their defaults.

    Raises:
        ConfigError: If configuration is invalid
    """
    data = {} if data is None else data
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Configuration root must be a mapping, got {type(data).__name__}")

    validate_config(data)

    try:
        camera = CameraConfig(**{**data["camera"], "source": str(data["camera"]["source"])})
        announcer = dict(data["announcer"])
        if announcer["command"] is not None:
            announcer["command"] = tuple(announcer["command"])
        return AppConfig(
            camera=camera,
            pipeline=PipelineConfig(**data["pipeline"]),
            strike_zone=StrikeZoneConfig(**data["strike_zone"]),
            judge=JudgeConfig(**data["judge"]),
            detector=DetectorConfig(
                **{role: _backend_config(role, data["detector"][role]) for role in _DEFAULT_DETECTOR_TYPE}
            ),
            announcer=AnnouncerConfig(**announcer),
            logging=LoggingConfig(**data["logging"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidConfigError(f"Cannot build configuration: {e}") from e


def load_config(path: Union[str, Path]) -> AppConfig:
    """Read, validate and convert a YAML configuration file.

    Raises:
        InvalidConfigError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    if not path.is_file():
        raise InvalidConfigError(f"Configuration file not found: {path}")
    logger.info(f"Loading configuration from {path}")
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise InvalidConfigError(f"Cannot parse {path}: {e}") from e

    config = config_from_dict(data)
    logger.info(
        f"Configuration loaded: person={config.detector.person.type} ball={config.detector.ball.type} "
        f"every {config.pipeline.sample_every_n_frames} frames, "
        f"{config.camera.width}x{config.camera.height}@{config.camera.fps}fps"
    )
    return config


def default_config() -> AppConfig:
    """Return the configuration shipped in configs/default.yaml."""
    try:
        return load_config(DEFAULT_CONFIG_PATH)
    except ConfigError:
        logger.warning(f"Bundled configuration unavailable at {DEFAULT_CONFIG_PATH}, using built-in defaults")
        return AppConfig()
