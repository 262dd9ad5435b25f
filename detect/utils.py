"""Image helpers shared by the classical detectors."""

from __future__ import annotations

from typing import List

import cv2
import numpy as np

from detect.types import BlobDetection


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Return a float32 single-channel copy of a BGR or gray image."""
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image.astype(np.float32)


def _circularity(area: float, perimeter: float) -> float:
    if perimeter <= 0:
        return 0.0
    return float(4.0 * np.pi * area / (perimeter * perimeter))


def find_blobs(mask: np.ndarray) -> List[BlobDetection]:
    """Measure each 4-connected foreground region of ``mask``.

    Bounding boxes are inclusive pixel corners ``(x1, y1, x2, y2)`` with rows
    counted from the top of the image.
    """
    count, labels, stats, centroids = cv2.connectedComponentsWithStats(
        mask.astype(np.uint8), connectivity=4
    )
    blobs: List[BlobDetection] = []
    for label in range(1, count):  # 0 is background
        x, y, w, h, area = (int(v) for v in stats[label])
        roi = (labels[y:y + h, x:x + w] == label).astype(np.uint8)
        contours, _ = cv2.findContours(roi, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_NONE)
        perimeter = max((cv2.arcLength(c, True) for c in contours), default=0.0)
        cx, cy = centroids[label]
        blobs.append(
            BlobDetection(
                centroid=(float(cx), float(cy)),
                area=area,
                perimeter=float(perimeter),
                bbox=(x, y, x + w - 1, y + h - 1),
                circularity=_circularity(area, perimeter),
            )
        )
    return blobs
