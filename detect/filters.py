from __future__ import annotations

from typing import Iterable, List, Optional

from detect.config import FilterConfig
from detect.types import BlobDetection


def _within(value: float, low: float, high: Optional[float]) -> bool:
    return value >= low and (high is None or value <= high)


def passes_filters(blob: BlobDetection, config: FilterConfig) -> bool:
    """True when the blob's area and circularity fall in the configured ranges."""
    return _within(blob.area, config.min_area, config.max_area) and _within(
        blob.circularity, config.min_circularity, config.max_circularity
    )


def apply_filters(blobs: Iterable[BlobDetection], config: FilterConfig) -> List[BlobDetection]:
    return [blob for blob in blobs if passes_filters(blob, config)]
