"""Strike zone calibration and strike/ball judging."""

from .strike_judge import ContainmentMode, StrikeJudge, judge
from .strike_zone import ZoneCalibrator, calibrate_zone

__all__ = [
    "ContainmentMode",
    "StrikeJudge",
    "ZoneCalibrator",
    "calibrate_zone",
    "judge",
]
