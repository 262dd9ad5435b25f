"""ML detector using OpenCV DNN with YOLO-style outputs."""

from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import numpy as np

from contracts import BoundingBox, Frame
from detect.detector import Detector, require_image
from exceptions import DetectionBackendError, ModelLoadError
from log_config.logger import get_logger

logger = get_logger(__name__)

# COCO class ids used by the stock YOLO exports
COCO_PERSON = 0
COCO_SPORTS_BALL = 32


class MlDetector(Detector):
    name = "ml"

    def __init__(
        self,
        model_path: Optional[str],
        input_size: Tuple[int, int] = (640, 640),
        conf_threshold: float = 0.25,
        class_id: int = COCO_PERSON,
        output_format: str = "yolo_v5",
        nms_threshold: float = 0.45,
        label: Optional[str] = None,
    ) -> None:
        if not model_path:
            raise ModelLoadError("MlDetector requires a model_path")
        self.model_path = model_path
        self.input_size = input_size
        self.conf_threshold = conf_threshold
        self.class_id = class_id
        self.output_format = output_format
        self.nms_threshold = nms_threshold
        self.label = label
        self._net: Optional[cv2.dnn.Net] = None

    def _load_net(self) -> cv2.dnn.Net:
        if self._net is None:
            try:
                self._net = cv2.dnn.readNetFromONNX(self.model_path)
            except cv2.error as e:
                raise ModelLoadError(f"Failed to load model {self.model_path}: {e}") from e
            logger.info(f"Loaded detection model {self.model_path} (class {self.class_id})")
        return self._net

    def detect(self, frame: Frame) -> List[BoundingBox]:
        image = require_image(frame)
        net = self._load_net()
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        try:
            blob = cv2.dnn.blobFromImage(
                image,
                scalefactor=1 / 255.0,
                size=self.input_size,
                swapRB=True,
                crop=False,
            )
            net.setInput(blob)
            outputs = net.forward()
        except cv2.error as e:
            raise DetectionBackendError(f"Model inference failed: {e}") from e
        return parse_outputs(
            outputs=outputs,
            frame_width=frame.width,
            frame_height=frame.height,
            input_size=self.input_size,
            conf_threshold=self.conf_threshold,
            class_id=self.class_id,
            output_format=self.output_format,
            nms_threshold=self.nms_threshold,
            label=self.label,
        )

    def close(self) -> None:
        self._net = None


def _prediction_rows(outputs, output_format: str) -> np.ndarray:
    """Return one row per candidate: ``cx, cy, w, h`` then scores."""
    if isinstance(outputs, (list, tuple)):
        outputs = outputs[0]
    rows = np.asarray(outputs, dtype=np.float32)
    if rows.ndim == 3:
        rows = rows[0]
    # YOLOv8 exports are laid out (features, anchors)
    if output_format == "yolo_v8":
        rows = rows.T
    return rows


def parse_outputs(
    outputs: np.ndarray,
    frame_width: int,
    frame_height: int,
    input_size: Tuple[int, int],
    conf_threshold: float,
    class_id: int,
    output_format: str,
    nms_threshold: float,
    label: Optional[str] = None,
) -> List[BoundingBox]:
    """Decode YOLO output rows for ``class_id`` into normalized boxes after NMS.

    ``yolo_v5`` rows carry an objectness score at index 4 that scales every
    class score; ``yolo_v8`` rows carry class scores directly.
    """
    rows = _prediction_rows(outputs, output_format)
    if rows.size == 0:
        return []

    if output_format == "yolo_v5":
        class_scores = rows[:, 5:] * rows[:, 4:5]
    else:
        class_scores = rows[:, 4:]
    best = class_scores.argmax(axis=1)
    scores = class_scores[np.arange(len(rows)), best]
    keep = (best == class_id) & (scores >= conf_threshold)
    if not keep.any():
        return []

    input_w, input_h = input_size
    xywh = rows[keep, :4].astype(np.float64)
    scores = scores[keep]
    # Some exports emit coordinates relative to the network input
    relative = xywh.max(axis=1) <= 1.5
    xywh[relative] *= (input_w, input_h, input_w, input_h)
    xywh *= (
        frame_width / float(input_w),
        frame_height / float(input_h),
        frame_width / float(input_w),
        frame_height / float(input_h),
    )
    xywh[:, 0] -= xywh[:, 2] / 2
    xywh[:, 1] -= xywh[:, 3] / 2

    indices = cv2.dnn.NMSBoxes(
        [[int(v) for v in rect] for rect in xywh],
        [float(s) for s in scores],
        conf_threshold,
        nms_threshold,
    )
    return [
        BoundingBox.from_pixels(
            *map(float, xywh[i]), frame_width, frame_height, confidence=float(scores[i]), label=label
        )
        for i in np.asarray(indices, dtype=int).reshape(-1)
    ]
