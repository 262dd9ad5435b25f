"""Core data contracts for capture, detection, zone calibration, and judging.

Normalized coordinates use a bottom-left origin: ``x`` grows to the right,
``y`` grows upward, and a box's ``y`` is its bottom edge. Image rows grow
downward, so pixel boxes are flipped on the way in and out
(see ``BoundingBox.from_pixels`` and ``BoundingBox.to_pixels``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Frame:
    camera_id: str
    frame_index: int
    t_capture_monotonic_ns: int
    image: Any
    width: int
    height: int
    pixfmt: str


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle in normalized frame coordinates.

    Construction never validates the size: detectors can report noise such as
    zero or negative extents, and consumers decide how to reject it via
    ``is_degenerate``. ``confidence`` and ``label`` describe where the box came
    from and do not take part in equality.
    """

    x: float
    y: float
    width: float
    height: float
    confidence: float = field(default=1.0, compare=False)
    label: Optional[str] = field(default=None, compare=False)

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2.0

    @property
    def center(self) -> Tuple[float, float]:
        return (self.mid_x, self.mid_y)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_degenerate(self) -> bool:
        """True when the box has no positive width or height."""
        return self.width <= 0 or self.height <= 0

    def contains_point(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def contains_box(self, other: "BoundingBox") -> bool:
        """True when every edge of ``other`` lies inside this box (edges inclusive)."""
        return (
            self.min_x <= other.min_x
            and other.max_x <= self.max_x
            and self.min_y <= other.min_y
            and other.max_y <= self.max_y
        )

    @classmethod
    def from_pixels(
        cls,
        x_px: float,
        y_px: float,
        w_px: float,
        h_px: float,
        frame_width: int,
        frame_height: int,
        confidence: float = 1.0,
        label: Optional[str] = None,
    ) -> "BoundingBox":
        """Convert a top-left pixel box (OpenCV convention) to normalized coordinates."""
        if frame_width <= 0 or frame_height <= 0:
            raise ValueError(f"Invalid frame size {frame_width}x{frame_height}")
        return cls(
            x=x_px / float(frame_width),
            y=1.0 - (y_px + h_px) / float(frame_height),
            width=w_px / float(frame_width),
            height=h_px / float(frame_height),
            confidence=confidence,
            label=label,
        )

    def to_pixels(self, frame_width: int, frame_height: int) -> Tuple[int, int, int, int]:
        """Return ``(x, y, w, h)`` as a top-left pixel box for drawing."""
        x_px = int(round(self.x * frame_width))
        y_px = int(round((1.0 - self.max_y) * frame_height))
        w_px = int(round(self.width * frame_width))
        h_px = int(round(self.height * frame_height))
        return x_px, y_px, w_px, h_px


@dataclass(frozen=True)
class StrikeZone(BoundingBox):
    """Strike zone rectangle and the frame it was derived from."""

    frame_index: int = 0

    @classmethod
    def from_box(cls, box: BoundingBox, frame_index: int = 0) -> "StrikeZone":
        return cls(
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            frame_index=frame_index,
        )


class Verdict(str, Enum):
    STRIKE = "strike"
    BALL = "ball"
    INDETERMINATE = "indeterminate"

    @property
    def utterance(self) -> Optional[str]:
        """Spoken text for this verdict, or None when it must stay silent."""
        return _UTTERANCES[self]

    @property
    def is_announceable(self) -> bool:
        return self is not Verdict.INDETERMINATE


_UTTERANCES = {
    Verdict.STRIKE: "Strike!",
    Verdict.BALL: "Ball!",
    Verdict.INDETERMINATE: None,
}


@dataclass(frozen=True)
class FrameResult:
    """Observable outcome of one pipeline step.

    ``verdict`` is None for unsampled frames that emit nothing. ``announced``
    means the verdict was handed to the announcement sink; a queueing sink may
    still merge or drop it.
    """

    frame_index: int
    sequence: int
    sampled: bool
    zone: Optional[StrikeZone]
    batter_box: Optional[BoundingBox] = None
    ball_box: Optional[BoundingBox] = None
    verdict: Optional[Verdict] = None
    announced: bool = False
    errors: Tuple[str, ...] = ()
