"""Tests for strike zone calibration from a batter box."""

from __future__ import annotations

import pytest

from contracts import BoundingBox
from exceptions import CalibrationError, DegenerateInputError, InvertedZoneError
from metrics import ZoneCalibrator, calibrate_zone


def test_calibrate_standard_batter():
    """Batter at (0.4, 0.1) sized 0.2 x 0.8 gets a centered 0.3-wide zone."""
    zone = calibrate_zone(BoundingBox(0.4, 0.1, 0.2, 0.8))

    assert zone.x == pytest.approx(0.35)
    assert zone.y == pytest.approx(0.34)
    assert zone.width == pytest.approx(0.3)
    assert zone.height == pytest.approx(0.32)


@pytest.mark.parametrize(
    "batter",
    [
        BoundingBox(0.0, 0.0, 0.1, 1.0),
        BoundingBox(0.7, 0.2, 0.25, 0.5),
        BoundingBox(0.45, 0.6, 0.05, 0.05),
    ],
)
def test_zone_geometry_follows_body_ratios(batter):
    calibrator = ZoneCalibrator(zone_width=0.25, knee_ratio=0.25, shoulder_ratio=0.75)
    zone = calibrator.calibrate(batter)

    assert zone.height > 0
    assert zone.width == pytest.approx(0.25)
    assert zone.mid_x == pytest.approx(batter.mid_x)
    assert zone.y == pytest.approx(batter.y + 0.25 * batter.height)
    assert zone.max_y == pytest.approx(batter.y + 0.75 * batter.height)
    assert zone.height == pytest.approx(0.5 * batter.height)


def test_calibration_is_deterministic():
    batter = BoundingBox(0.31, 0.07, 0.18, 0.77)
    calibrator = ZoneCalibrator()
    assert calibrator.calibrate(batter) == calibrator.calibrate(batter)


def test_zone_records_frame_index():
    zone = ZoneCalibrator().calibrate(BoundingBox(0.4, 0.1, 0.2, 0.8), frame_index=42)
    assert zone.frame_index == 42


@pytest.mark.parametrize(
    "batter",
    [
        BoundingBox(0.4, 0.1, 0.2, 0.0),
        BoundingBox(0.4, 0.1, 0.2, -0.3),
        BoundingBox(0.4, 0.1, 0.0, 0.8),
    ],
)
def test_degenerate_batter_rejected(batter):
    with pytest.raises(DegenerateInputError):
        ZoneCalibrator().calibrate(batter)


def test_inverted_ratios_rejected():
    calibrator = ZoneCalibrator(knee_ratio=0.7, shoulder_ratio=0.3)
    with pytest.raises(InvertedZoneError):
        calibrator.calibrate(BoundingBox(0.4, 0.1, 0.2, 0.8))


def test_equal_ratios_rejected():
    with pytest.raises(CalibrationError):
        calibrate_zone(BoundingBox(0.4, 0.1, 0.2, 0.8), knee_ratio=0.5, shoulder_ratio=0.5)


@pytest.mark.parametrize(
    "kwargs",
    [{"zone_width": 0.0}, {"knee_ratio": -0.1}, {"shoulder_ratio": 1.5}],
)
def test_invalid_settings_rejected(kwargs):
    with pytest.raises(ValueError):
        ZoneCalibrator(**kwargs)


def test_zone_from_short_batter():
    zone = calibrate_zone(BoundingBox(0.4, 0.2, 0.2, 0.6))

    assert zone.x == pytest.approx(0.35)
    assert zone.y == pytest.approx(0.38)
    assert zone.width == pytest.approx(0.3)
    assert zone.height == pytest.approx(0.24)
