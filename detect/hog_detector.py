"""Person detector using OpenCV's HOG + linear SVM people model."""

from __future__ import annotations

import time
from typing import List, Optional, Tuple

import cv2
import numpy as np

from contracts import BoundingBox, Frame
from detect.detector import Detector, require_image
from exceptions import DetectionBackendError
from log_config.logger import get_logger, log_performance

logger = get_logger(__name__)


class HogPersonDetector(Detector):
    name = "hog"

    def __init__(
        self,
        win_stride: Tuple[int, int] = (8, 8),
        padding: Tuple[int, int] = (8, 8),
        scale: float = 1.05,
        min_confidence: float = 0.0,
        resize_width: Optional[int] = 640,
        runtime_budget_ms: float = 50.0,
    ) -> None:
        self.win_stride = win_stride
        self.padding = padding
        self.scale = scale
        self.min_confidence = min_confidence
        self.resize_width = resize_width
        self.runtime_budget_ms = runtime_budget_ms
        self._hog = cv2.HOGDescriptor()
        self._hog.setSVMDetector(cv2.HOGDescriptor_getDefaultPeopleDetector())

    def detect(self, frame: Frame) -> List[BoundingBox]:
        start = time.perf_counter()
        image = require_image(frame)

        # Detection runs on a downscaled copy; boxes are normalized so the
        # scale factor cancels out.
        height, width = image.shape[:2]
        if self.resize_width is not None and width > self.resize_width:
            factor = self.resize_width / float(width)
            image = cv2.resize(image, (self.resize_width, max(1, int(height * factor))))
            height, width = image.shape[:2]

        try:
            rects, weights = self._hog.detectMultiScale(
                image,
                winStride=self.win_stride,
                padding=self.padding,
                scale=self.scale,
            )
        except cv2.error as e:
            raise DetectionBackendError(f"HOG people detection failed: {e}") from e

        scores = np.asarray(weights, dtype=np.float32).reshape(-1)
        boxes: List[BoundingBox] = []
        for i, (x, y, w, h) in enumerate(rects):
            confidence = float(scores[i]) if i < len(scores) else 1.0
            if confidence < self.min_confidence:
                continue
            boxes.append(
                BoundingBox.from_pixels(
                    float(x), float(y), float(w), float(h), width, height,
                    confidence=confidence,
                    label="person",
                )
            )

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        log_performance(f"hog detect frame {frame.frame_index}", elapsed_ms, self.runtime_budget_ms)
        return boxes
