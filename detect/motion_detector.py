"""Classical ball detector using frame differencing and blob filters."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from contracts import BoundingBox, Frame
from detect.config import MotionConfig
from detect.detector import Detector, require_image
from detect.filters import apply_filters
from detect.types import blob_to_box
from detect.utils import find_blobs, to_grayscale
from log_config.logger import get_logger, log_performance

logger = get_logger(__name__)


@dataclass
class _StreamState:
    prev_gray: Optional[np.ndarray] = None
    background: Optional[np.ndarray] = None
    consecutive_hits: int = 0


def foreground_mask(
    gray: np.ndarray,
    prev_gray: np.ndarray,
    background: np.ndarray,
    config: MotionConfig,
) -> tuple[np.ndarray, np.ndarray]:
    """Return the moving-pixel mask and the updated background model."""
    diff = np.abs(gray - prev_gray)
    bg_diff = np.abs(gray - background)
    foreground = (diff > config.frame_diff_threshold) | (
        bg_diff > config.bg_diff_threshold
    )
    background = config.bg_alpha * gray + (1 - config.bg_alpha) * background
    return foreground, background.astype(np.float32)


class MotionBallDetector(Detector):
    """Finds small round moving blobs, one stream at a time.

    The first frame only seeds the background model and yields nothing.
    Frames of a different size reset the model.
    """

    name = "motion"

    def __init__(self, config: Optional[MotionConfig] = None) -> None:
        self._config = config or MotionConfig()
        self._state = _StreamState()

    def detect(self, frame: Frame) -> List[BoundingBox]:
        start = time.perf_counter()
        image = require_image(frame)
        gray = to_grayscale(image)
        state = self._state

        if state.prev_gray is None or state.prev_gray.shape != gray.shape:
            state.prev_gray = gray
            state.background = gray.copy()
            state.consecutive_hits = 0
            return []

        mask, state.background = foreground_mask(
            gray, state.prev_gray, state.background, self._config
        )
        state.prev_gray = gray

        blobs = apply_filters(find_blobs(mask), self._config.filters)
        if blobs:
            state.consecutive_hits += 1
        else:
            state.consecutive_hits = 0

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        log_performance(f"motion detect frame {frame.frame_index}", elapsed_ms, self._config.runtime_budget_ms)

        if state.consecutive_hits < self._config.min_consecutive:
            return []
        return [blob_to_box(blob, frame.width, frame.height) for blob in blobs]

    def reset(self) -> None:
        self._state = _StreamState()
