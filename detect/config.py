"""Tuning knobs for the motion ball detector."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class FilterConfig:
    """Accepted blob ranges; ``None`` leaves the upper bound open."""

    min_area: int = 12
    max_area: Optional[int] = None
    min_circularity: float = 0.1
    max_circularity: Optional[float] = None


@dataclass(frozen=True)
class MotionConfig:
    # Gray-level deltas that mark a pixel as moving
    frame_diff_threshold: float = 18.0
    bg_diff_threshold: float = 12.0
    bg_alpha: float = 0.08  # background learning rate
    runtime_budget_ms: float = 4.0
    min_consecutive: int = 1
    filters: FilterConfig = field(default_factory=FilterConfig)
