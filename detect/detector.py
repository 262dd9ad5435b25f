"""Detector abstraction shared by person and ball detection backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

import numpy as np

from contracts import BoundingBox, Frame
from exceptions import MalformedFrameError


class Detector(ABC):
    """Returns bounding boxes for one kind of object in a frame.

    Boxes are normalized with a bottom-left origin. Backends raise
    ``DetectionError`` subclasses on failure; callers decide how to recover.
    """

    name: str = "detector"

    @abstractmethod
    def detect(self, frame: Frame) -> List[BoundingBox]:
        """Detect objects in a frame."""

    def reset(self) -> None:
        """Drop any per-stream state (background models, previous frames)."""
        return None

    def close(self) -> None:
        """Release backend resources."""
        return None


def require_image(frame: Frame) -> np.ndarray:
    """Return the frame image as an array or raise MalformedFrameError."""
    image = frame.image
    if not isinstance(image, np.ndarray):
        raise MalformedFrameError(
            f"Frame {frame.frame_index} has no image array (got {type(image).__name__})"
        )
    if image.ndim not in (2, 3) or image.size == 0:
        raise MalformedFrameError(
            f"Frame {frame.frame_index} has unsupported image shape {image.shape}"
        )
    if image.shape[0] != frame.height or image.shape[1] != frame.width:
        raise MalformedFrameError(
            f"Frame {frame.frame_index} image shape {image.shape[:2]} does not match "
            f"declared size {frame.height}x{frame.width}"
        )
    return image
