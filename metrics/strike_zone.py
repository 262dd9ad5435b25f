"""Strike zone calibration from a batter's bounding box."""

from __future__ import annotations

from dataclasses import dataclass

from contracts import BoundingBox, StrikeZone
from exceptions import DegenerateInputError, InvertedZoneError

DEFAULT_ZONE_WIDTH = 0.3
DEFAULT_KNEE_RATIO = 0.3
DEFAULT_SHOULDER_RATIO = 0.7


@dataclass(frozen=True)
class ZoneCalibrator:
    """Derives a strike zone from body proportions.

    The zone spans from the knee line to the shoulder line of the batter box
    (ratios measured up from the batter's feet) and has a fixed width centered
    on the batter.
    """

    zone_width: float = DEFAULT_ZONE_WIDTH
    knee_ratio: float = DEFAULT_KNEE_RATIO
    shoulder_ratio: float = DEFAULT_SHOULDER_RATIO

    def __post_init__(self) -> None:
        if self.zone_width <= 0:
            raise ValueError(f"zone_width must be positive, got {self.zone_width}")
        for name in ("knee_ratio", "shoulder_ratio"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

    def calibrate(self, batter_box: BoundingBox, frame_index: int = 0) -> StrikeZone:
        """Compute the strike zone for a batter.

        Args:
            batter_box: Batter bounding box in normalized coordinates
            frame_index: Frame the batter box was detected in

        Returns:
            Strike zone with positive height

        Raises:
            DegenerateInputError: If the batter box has no height or no area
            InvertedZoneError: If the shoulder line is not above the knee line
        """
        if batter_box.height <= 0:
            raise DegenerateInputError(
                f"Batter box height must be positive, got {batter_box.height}"
            )
        if batter_box.is_degenerate:
            raise DegenerateInputError(
                f"Batter box has zero area: {batter_box.width}x{batter_box.height}"
            )

        knee_y = batter_box.y + self.knee_ratio * batter_box.height
        shoulder_y = batter_box.y + self.shoulder_ratio * batter_box.height
        height = shoulder_y - knee_y
        if height <= 0:
            raise InvertedZoneError(
                f"Shoulder line {shoulder_y:.4f} is not above knee line {knee_y:.4f}"
            )

        return StrikeZone(
            x=batter_box.mid_x - self.zone_width / 2.0,
            y=knee_y,
            width=self.zone_width,
            height=height,
            frame_index=frame_index,
        )


def calibrate_zone(
    batter_box: BoundingBox,
    zone_width: float = DEFAULT_ZONE_WIDTH,
    knee_ratio: float = DEFAULT_KNEE_RATIO,
    shoulder_ratio: float = DEFAULT_SHOULDER_RATIO,
    frame_index: int = 0,
) -> StrikeZone:
    calibrator = ZoneCalibrator(
        zone_width=zone_width,
        knee_ratio=knee_ratio,
        shoulder_ratio=shoulder_ratio,
    )
    return calibrator.calibrate(batter_box, frame_index=frame_index)
