"""Shared data contracts for the umpire pipeline."""

from .types import (
    BoundingBox,
    Frame,
    FrameResult,
    StrikeZone,
    Verdict,
)

__all__ = [
    "BoundingBox",
    "Frame",
    "FrameResult",
    "StrikeZone",
    "Verdict",
]
