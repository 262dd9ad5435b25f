"""Custom exception classes for Homeplate Umpire."""

from __future__ import annotations

from typing import Optional


class UmpireError(Exception):
    """Base exception for all Homeplate Umpire errors."""

    pass


class CameraError(UmpireError):
    """Base exception for camera-related errors."""

    def __init__(self, message: str, camera_id: Optional[str] = None):
        self.camera_id = camera_id
        super().__init__(message)


class CameraConnectionError(CameraError):
    """Raised when a camera or video file cannot be opened."""

    pass


class CalibrationError(UmpireError):
    """Base exception for strike zone calibration errors."""

    pass


class DegenerateInputError(CalibrationError):
    """Raised when the batter box has no usable height or area."""

    pass


class InvertedZoneError(CalibrationError):
    """Raised when the shoulder line does not sit above the knee line."""

    pass


class DetectionError(UmpireError):
    """Base exception for detection-related errors."""

    pass


class DetectionBackendError(DetectionError):
    """Raised when a detection backend fails while running."""

    pass


class MalformedFrameError(DetectionError):
    """Raised when a frame cannot be interpreted as an image."""

    pass


class ModelLoadError(DetectionError):
    """Raised when ML model fails to load."""

    pass


class PipelineError(UmpireError):
    """Base exception for pipeline run loop errors."""

    pass


class NoFrameSourceError(PipelineError):
    """Raised when the frame source is exhausted or disconnected."""

    pass


class ConfigError(UmpireError):
    """Base exception for configuration errors."""

    pass


class InvalidConfigError(ConfigError):
    """Raised when configuration file is invalid or corrupted."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration fails schema validation."""

    def __init__(self, message: str, validation_errors: Optional[list] = None):
        self.validation_errors = validation_errors or []
        super().__init__(message)


class AnnouncementError(UmpireError):
    """Raised when an announcement sink fails to render a verdict."""

    pass
