"""Builds detection backends from configuration."""

from __future__ import annotations

from configs.settings import DetectorBackendConfig
from contracts import BoundingBox
from detect.config import FilterConfig, MotionConfig
from detect.detector import Detector
from detect.hog_detector import HogPersonDetector
from detect.ml_detector import COCO_PERSON, COCO_SPORTS_BALL, MlDetector
from detect.motion_detector import MotionBallDetector
from detect.simple_detector import StaticDetector
from log_config.logger import get_logger

logger = get_logger(__name__)

_DEFAULT_CLASS_ID = {"person": COCO_PERSON, "ball": COCO_SPORTS_BALL}


def build_detector(config: DetectorBackendConfig, role: str) -> Detector:
    """Create the detector described by ``config`` for the ``person`` or ``ball`` role.

    Raises:
        ValueError: If the role or detector type is unknown
        ModelLoadError: If an ML detector has no model path
    """
    if role not in _DEFAULT_CLASS_ID:
        raise ValueError(f"Unknown detector role: {role}")

    logger.info(f"Building {config.type} detector for {role} detection")
    if config.type == "hog":
        return HogPersonDetector(
            min_confidence=config.min_confidence,
            runtime_budget_ms=config.runtime_budget_ms,
        )
    if config.type == "ml":
        class_id = config.model_class_id
        if class_id is None:
            class_id = _DEFAULT_CLASS_ID[role]
        return MlDetector(
            model_path=config.model_path,
            input_size=tuple(config.model_input_size),
            conf_threshold=config.model_conf_threshold,
            class_id=class_id,
            output_format=config.model_format,
            label=role,
        )
    if config.type == "motion":
        return MotionBallDetector(
            MotionConfig(
                frame_diff_threshold=config.frame_diff_threshold,
                bg_diff_threshold=config.bg_diff_threshold,
                bg_alpha=config.bg_alpha,
                runtime_budget_ms=config.runtime_budget_ms,
                min_consecutive=config.min_consecutive,
                filters=FilterConfig(
                    min_area=config.min_area,
                    max_area=config.max_area,
                    min_circularity=config.min_circularity,
                ),
            )
        )
    if config.type == "static":
        boxes = [
            BoundingBox(*box[:4], confidence=box[4] if len(box) > 4 else 1.0, label=role)
            for box in config.boxes
        ]
        return StaticDetector(boxes)
    raise ValueError(f"Unknown detector type: {config.type}")
