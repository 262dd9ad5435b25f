"""Event types published by the frame pipeline.

All events are immutable dataclasses that flow through the EventBus.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from contracts import BoundingBox, StrikeZone, Verdict


@dataclass(frozen=True)
class ZoneCalibratedEvent:
    """Published when a new batter detection replaces the strike zone.

    Attributes:
        zone: The new strike zone
        batter_box: Batter box the zone was derived from
        previous_zone: Zone it replaced, None on first calibration
    """
    zone: StrikeZone
    batter_box: BoundingBox
    previous_zone: Optional[StrikeZone] = None


@dataclass(frozen=True)
class VerdictEvent:
    """Published for every judged frame, including INDETERMINATE verdicts.

    Attributes:
        frame_index: Frame the verdict belongs to
        verdict: Outcome of the judge
        announced: Whether the verdict was forwarded to the announcer
        ball_box: Ball candidate that was judged, if any
        repeated: True when an unsampled frame repeats the last verdict
    """
    frame_index: int
    verdict: Verdict
    announced: bool
    ball_box: Optional[BoundingBox] = None
    repeated: bool = False


@dataclass(frozen=True)
class FrameDroppedEvent:
    """Published when backpressure drops a pending frame.

    Attributes:
        frame_index: Index of the dropped frame
        total_dropped: Frames dropped since the runner started
    """
    frame_index: int
    total_dropped: int
