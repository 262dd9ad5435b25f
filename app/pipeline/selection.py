"""Candidate selection for batter and ball detections.

Degenerate boxes are detection noise and never selected. Every policy is a
total order over the remaining candidates, so the same input always yields
the same choice regardless of how ties are reported.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Sequence

from contracts import BoundingBox


class BallSelectionPolicy(str, Enum):
    HIGHEST_CONFIDENCE = "highest_confidence"
    FIRST = "first"  # First usable candidate in detector order
    LARGEST = "largest"
    MOST_CENTRAL = "most_central"  # Closest to zone center, else frame center


class UnsampledFramePolicy(str, Enum):
    SKIP = "skip"
    REPEAT_LAST = "repeat_last"


def select_batter(boxes: Sequence[BoundingBox]) -> Optional[BoundingBox]:
    """Pick the tallest person; the catcher and umpire crouch.

    Ties go to the lower ``x``, then the lower ``y``, then detector order.
    """
    candidates = [(i, box) for i, box in enumerate(boxes) if not box.is_degenerate]
    if not candidates:
        return None
    _, batter = min(candidates, key=lambda item: (-item[1].height, item[1].x, item[1].y, item[0]))
    return batter


def select_ball(
    boxes: Sequence[BoundingBox],
    policy: BallSelectionPolicy = BallSelectionPolicy.HIGHEST_CONFIDENCE,
    zone: Optional[BoundingBox] = None,
) -> Optional[BoundingBox]:
    """Pick one ball candidate according to ``policy``; ties go to detector order."""
    candidates = [(i, box) for i, box in enumerate(boxes) if not box.is_degenerate]
    if not candidates:
        return None

    policy = BallSelectionPolicy(policy)
    if policy == BallSelectionPolicy.FIRST:
        return candidates[0][1]
    if policy == BallSelectionPolicy.HIGHEST_CONFIDENCE:
        return min(candidates, key=lambda item: (-item[1].confidence, item[0]))[1]
    if policy == BallSelectionPolicy.LARGEST:
        return min(candidates, key=lambda item: (-item[1].area, item[0]))[1]

    ref_x, ref_y = zone.center if zone is not None and not zone.is_degenerate else (0.5, 0.5)
    return min(
        candidates,
        key=lambda item: (math.hypot(item[1].mid_x - ref_x, item[1].mid_y - ref_y), item[0]),
    )[1]
