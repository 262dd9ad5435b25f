"""Detection module."""

from .detector import Detector, require_image
from .factory import build_detector
from .hog_detector import HogPersonDetector
from .ml_detector import MlDetector
from .motion_detector import MotionBallDetector
from .simple_detector import ScriptedDetector, StaticDetector

__all__ = [
    "Detector",
    "HogPersonDetector",
    "MlDetector",
    "MotionBallDetector",
    "ScriptedDetector",
    "StaticDetector",
    "build_detector",
    "require_image",
]
