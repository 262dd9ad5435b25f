from __future__ import annotations

from dataclasses import dataclass

from contracts import BoundingBox


@dataclass
class BlobDetection:
    centroid: tuple[float, float]
    area: int
    perimeter: float
    bbox: tuple[int, int, int, int]
    circularity: float


def blob_to_box(
    blob: BlobDetection,
    frame_width: int,
    frame_height: int,
    label: str = "ball",
) -> BoundingBox:
    """Convert an inclusive pixel bbox ``(x1, y1, x2, y2)`` to a normalized box."""
    x1, y1, x2, y2 = blob.bbox
    return BoundingBox.from_pixels(
        x1,
        y1,
        x2 - x1 + 1,
        y2 - y1 + 1,
        frame_width,
        frame_height,
        confidence=min(1.0, max(blob.circularity, 0.0)),
        label=label,
    )
