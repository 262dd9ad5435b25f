"""Strike/ball decision for a single ball position."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from contracts import BoundingBox, Verdict


class ContainmentMode(str, Enum):
    FULLY_CONTAINED = "fully_contained"  # All four ball edges inside the zone
    CENTER_POINT = "center_point"  # Ball center inside the zone


@dataclass(frozen=True)
class StrikeJudge:
    containment_mode: ContainmentMode = ContainmentMode.FULLY_CONTAINED

    def judge(
        self,
        zone: Optional[BoundingBox],
        ball_box: Optional[BoundingBox],
    ) -> Verdict:
        """Call a strike or a ball.

        Returns INDETERMINATE when no zone is established, no ball candidate
        exists, or either rectangle is degenerate.
        """
        if zone is None or ball_box is None:
            return Verdict.INDETERMINATE
        if zone.is_degenerate or ball_box.is_degenerate:
            return Verdict.INDETERMINATE

        if self.containment_mode == ContainmentMode.CENTER_POINT:
            inside = zone.contains_point(ball_box.mid_x, ball_box.mid_y)
        else:
            inside = zone.contains_box(ball_box)
        return Verdict.STRIKE if inside else Verdict.BALL


def judge(
    zone: Optional[BoundingBox],
    ball_box: Optional[BoundingBox],
    containment_mode: ContainmentMode = ContainmentMode.FULLY_CONTAINED,
) -> Verdict:
    return StrikeJudge(containment_mode=ContainmentMode(containment_mode)).judge(zone, ball_box)
