"""JSON Schema for umpire configuration files.

Validation also fills every missing key that has a schema default, so a
validated mapping is complete enough to build the settings dataclasses.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from jsonschema import Draft7Validator, validators

from exceptions import ConfigValidationError
from log_config.logger import get_logger

logger = get_logger(__name__)

_DETECTOR_BACKEND_SCHEMA = {
    "type": "object",
    "default": {},
    "properties": {
        "type": {"type": "string", "enum": ["hog", "ml", "motion", "static"]},
        "model_path": {"type": ["string", "null"], "default": None},
        "model_input_size": {
            "type": "array",
            "items": {"type": "integer", "minimum": 128, "maximum": 1024},
            "minItems": 2,
            "maxItems": 2,
            "default": [640, 640],
        },
        "model_conf_threshold": {"type": "number", "minimum": 0.0, "maximum": 1.0, "default": 0.25},
        "model_class_id": {"type": ["integer", "null"], "minimum": 0, "default": None},
        "model_format": {"type": "string", "enum": ["yolo_v5", "yolo_v8"], "default": "yolo_v5"},
        "min_confidence": {"type": "number", "default": 0.0},
        "frame_diff_threshold": {"type": "number", "minimum": 0, "maximum": 255, "default": 18.0},
        "bg_diff_threshold": {"type": "number", "minimum": 0, "maximum": 255, "default": 12.0},
        "bg_alpha": {"type": "number", "minimum": 0.0, "maximum": 1.0, "default": 0.08},
        "min_area": {"type": "integer", "minimum": 1, "default": 12},
        "max_area": {"type": ["integer", "null"], "minimum": 1, "default": None},
        "min_circularity": {"type": "number", "minimum": 0.0, "maximum": 1.0, "default": 0.1},
        "min_consecutive": {"type": "integer", "minimum": 1, "maximum": 10, "default": 1},
        "runtime_budget_ms": {"type": "number", "minimum": 0.1, "maximum": 1000, "default": 50.0},
        "boxes": {
            "type": "array",
            "default": [],
            "items": {
                "type": "array",
                "items": {"type": "number"},
                "minItems": 4,
                "maxItems": 5,
            },
        },
    },
}

# Mirrors configs/default.yaml
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "camera": {
            "type": "object",
            "default": {},
            "properties": {
                "source": {"type": ["string", "integer"], "default": "0"},
                "width": {"type": "integer", "minimum": 160, "maximum": 3840, "default": 1280},
                "height": {"type": "integer", "minimum": 120, "maximum": 2160, "default": 720},
                "fps": {"type": "integer", "minimum": 1, "maximum": 240, "default": 120},
                "pixfmt": {"type": "string", "enum": ["BGR", "GRAY8"], "default": "BGR"},
                "rotation": {"type": "string", "enum": ["none", "cw90", "ccw90", "180"], "default": "none"},
                "open_timeout_ms": {"type": "integer", "minimum": 1, "maximum": 60000, "default": 5000},
            },
        },
        "pipeline": {
            "type": "object",
            "default": {},
            "properties": {
                "sample_every_n_frames": {"type": "integer", "minimum": 1, "maximum": 1000, "default": 3},
                "unsampled_frame_policy": {
                    "type": "string",
                    "enum": ["skip", "repeat_last"],
                    "default": "skip",
                },
                "ball_selection_policy": {
                    "type": "string",
                    "enum": ["highest_confidence", "first", "largest", "most_central"],
                    "default": "highest_confidence",
                },
                "detection_budget_ms": {"type": "number", "minimum": 1, "maximum": 10000, "default": 100.0},
            },
        },
        "strike_zone": {
            "type": "object",
            "default": {},
            "properties": {
                "zone_width": {"type": "number", "exclusiveMinimum": 0.0, "maximum": 1.0, "default": 0.3},
                "knee_ratio": {"type": "number", "minimum": 0.0, "maximum": 1.0, "default": 0.3},
                "shoulder_ratio": {"type": "number", "minimum": 0.0, "maximum": 1.0, "default": 0.7},
            },
        },
        "judge": {
            "type": "object",
            "default": {},
            "properties": {
                "containment_mode": {
                    "type": "string",
                    "enum": ["fully_contained", "center_point"],
                    "default": "fully_contained",
                },
            },
        },
        "detector": {
            "type": "object",
            "default": {},
            "properties": {
                "person": _DETECTOR_BACKEND_SCHEMA,
                "ball": _DETECTOR_BACKEND_SCHEMA,
            },
        },
        "announcer": {
            "type": "object",
            "default": {},
            "properties": {
                "type": {"type": "string", "enum": ["speech", "log", "none"], "default": "speech"},
                "language": {"type": "string", "default": "en-US"},
                "voice": {"type": ["string", "null"], "default": None},
                "command": {
                    "type": ["array", "null"],
                    "items": {"type": "string"},
                    "minItems": 1,
                    "default": None,
                },
                "cooldown_ms": {"type": "integer", "minimum": 0, "maximum": 60000, "default": 1500},
                "queue_depth": {"type": "integer", "minimum": 1, "maximum": 64, "default": 4},
            },
        },
        "logging": {
            "type": "object",
            "default": {},
            "properties": {
                "level": {
                    "type": "string",
                    "enum": ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
                    "default": "INFO",
                },
                "dir": {"type": ["string", "null"], "default": None},
            },
        },
    },
}


def _with_defaults(validator_class):
    """Return ``validator_class`` extended to insert ``default`` values while validating."""
    check_properties = validator_class.VALIDATORS["properties"]

    def fill_and_check(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for name, subschema in properties.items():
                if "default" in subschema:
                    instance.setdefault(name, copy.deepcopy(subschema["default"]))
        yield from check_properties(validator, properties, instance, schema)

    return validators.extend(validator_class, {"properties": fill_and_check})


Draft7Validator.check_schema(CONFIG_SCHEMA)
_VALIDATOR = _with_defaults(Draft7Validator)(CONFIG_SCHEMA)


def _cross_field_errors(config: Dict[str, Any]) -> List[str]:
    errors = []
    zone = config.get("strike_zone", {})
    knee, shoulder = zone.get("knee_ratio"), zone.get("shoulder_ratio")
    if isinstance(knee, (int, float)) and isinstance(shoulder, (int, float)) and shoulder <= knee:
        errors.append(f"strike_zone: shoulder_ratio ({shoulder}) must be greater than knee_ratio ({knee})")
    for role, backend in config.get("detector", {}).items():
        if isinstance(backend, dict) and backend.get("type") == "ml" and not backend.get("model_path"):
            errors.append(f"detector -> {role}: model_path is required for the ml detector")
    return errors


def config_errors(config: Any) -> List[str]:
    """Return one ``"path: message"`` line per problem; fills defaults in place."""
    messages = [
        f"{' -> '.join(map(str, error.absolute_path)) or 'root'}: {error.message}"
        for error in _VALIDATOR.iter_errors(config)
    ]
    if not messages and isinstance(config, dict):
        messages = _cross_field_errors(config)
    return messages


def validate_config(config: Dict[str, Any]) -> None:
    """Validate ``config`` and fill in defaults.

    Raises:
        ConfigValidationError: Listing every problem found
    """
    messages = config_errors(config)
    if not messages:
        logger.debug("Configuration validation passed")
        return
    for message in messages:
        logger.error(f"Invalid configuration: {message}")
    raise ConfigValidationError(
        f"Configuration validation failed with {len(messages)} error(s): " + "; ".join(messages),
        validation_errors=messages,
    )


def validate_config_file(config_path: Union[str, Path]) -> None:
    """Validate a YAML configuration file; an empty file is valid."""
    path = Path(config_path)
    if not path.is_file():
        raise ConfigValidationError(f"Configuration file not found: {config_path}")
    try:
        config = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Failed to parse configuration file: {e}") from e
    validate_config({} if config is None else config)


__all__ = ["CONFIG_SCHEMA", "config_errors", "validate_config", "validate_config_file"]
