"""Tests for detection backends and the detector factory."""

from __future__ import annotations

import cv2
import numpy as np
import pytest

from configs.settings import DetectorBackendConfig
from contracts import BoundingBox
from detect import (
    HogPersonDetector,
    MlDetector,
    MotionBallDetector,
    ScriptedDetector,
    StaticDetector,
    build_detector,
    require_image,
)
from detect.config import FilterConfig, MotionConfig
from detect.ml_detector import COCO_PERSON, COCO_SPORTS_BALL, parse_outputs
from detect.types import BlobDetection, blob_to_box
from exceptions import DetectionBackendError, MalformedFrameError, ModelLoadError

WIDTH, HEIGHT = 320, 240


def ball_image(center=None, radius=10):
    image = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
    if center is not None:
        cv2.circle(image, center, radius, (255, 255, 255), thickness=-1)
    return image


class TestRequireImage:
    def test_accepts_matching_array(self, make_frame):
        frame = make_frame()
        assert require_image(frame) is frame.image

    def test_rejects_missing_image(self, make_frame):
        with pytest.raises(MalformedFrameError):
            require_image(make_frame(image=b"jpeg bytes"))

    def test_rejects_shape_mismatch(self, make_frame):
        with pytest.raises(MalformedFrameError):
            require_image(make_frame(image=np.zeros((10, 10, 3), dtype=np.uint8)))

    def test_rejects_empty_array(self, make_frame):
        with pytest.raises(MalformedFrameError):
            require_image(make_frame(width=0, height=0, image=np.zeros((0, 0), dtype=np.uint8)))


class TestMotionBallDetector:
    def test_first_frame_only_seeds_model(self, make_frame):
        detector = MotionBallDetector()
        frame = make_frame(width=WIDTH, height=HEIGHT, image=ball_image((100, 80)))
        assert detector.detect(frame) == []

    def test_detects_new_round_blob(self, make_frame):
        detector = MotionBallDetector()
        detector.detect(make_frame(1, WIDTH, HEIGHT, ball_image()))

        boxes = detector.detect(make_frame(2, WIDTH, HEIGHT, ball_image((100, 80))))

        assert len(boxes) == 1
        box = boxes[0]
        assert box.label == "ball"
        # Pixel row 80 from the top is normalized height 1 - 80/240 from the bottom.
        assert box.contains_point(100 / WIDTH, 1.0 - 80 / HEIGHT)
        assert box.width == pytest.approx(21 / WIDTH)
        assert 0.0 < box.confidence <= 1.0

    def test_small_blobs_filtered(self, make_frame):
        detector = MotionBallDetector(MotionConfig(filters=FilterConfig(min_area=500)))
        detector.detect(make_frame(1, WIDTH, HEIGHT, ball_image()))
        assert detector.detect(make_frame(2, WIDTH, HEIGHT, ball_image((100, 80)))) == []

    def test_consecutive_hits_gate(self, make_frame):
        detector = MotionBallDetector(MotionConfig(min_consecutive=2))
        detector.detect(make_frame(1, WIDTH, HEIGHT, ball_image()))
        assert detector.detect(make_frame(2, WIDTH, HEIGHT, ball_image((100, 80)))) == []
        assert len(detector.detect(make_frame(3, WIDTH, HEIGHT, ball_image((140, 80))))) >= 1

    def test_reset_forgets_background(self, make_frame):
        detector = MotionBallDetector()
        detector.detect(make_frame(1, WIDTH, HEIGHT, ball_image()))
        detector.reset()
        assert detector.detect(make_frame(2, WIDTH, HEIGHT, ball_image((100, 80)))) == []

    def test_grayscale_frames_supported(self, make_frame):
        detector = MotionBallDetector()
        detector.detect(make_frame(1, WIDTH, HEIGHT, np.zeros((HEIGHT, WIDTH), dtype=np.uint8)))
        gray = cv2.cvtColor(ball_image((200, 120)), cv2.COLOR_BGR2GRAY)
        assert len(detector.detect(make_frame(2, WIDTH, HEIGHT, gray))) == 1


def test_blob_to_box_flips_rows():
    blob = BlobDetection(centroid=(15.0, 5.0), area=100, perimeter=40, bbox=(10, 0, 19, 9), circularity=1.3)
    box = blob_to_box(blob, frame_width=100, frame_height=100)
    assert box.x == pytest.approx(0.10)
    assert box.max_y == pytest.approx(1.0)
    assert box.width == pytest.approx(0.10)
    assert box.confidence == 1.0


class TestHogPersonDetector:
    def test_blank_frame_has_no_people(self, make_frame):
        detector = HogPersonDetector()
        assert detector.detect(make_frame(1, WIDTH, HEIGHT, ball_image())) == []

    def test_malformed_frame_rejected(self, make_frame):
        with pytest.raises(MalformedFrameError):
            HogPersonDetector().detect(make_frame(image="not an image"))


class TestMlDetector:
    def test_requires_model_path(self):
        with pytest.raises(ModelLoadError):
            MlDetector(model_path=None)

    def test_missing_model_file_fails_on_first_detect(self, make_frame, tmp_path):
        detector = MlDetector(model_path=str(tmp_path / "missing.onnx"))
        with pytest.raises((ModelLoadError, DetectionBackendError)):
            detector.detect(make_frame())

    def test_parse_yolo_v5_rows(self):
        outputs = np.array([[
            [320, 320, 64, 128, 0.9, 0.8, 0.1],
            [100, 100, 20, 20, 0.9, 0.1, 0.9],
            [320, 320, 64, 128, 0.1, 0.9, 0.0],
        ]], dtype=np.float32)

        boxes = parse_outputs(
            outputs,
            frame_width=640,
            frame_height=480,
            input_size=(640, 640),
            conf_threshold=0.25,
            class_id=0,
            output_format="yolo_v5",
            nms_threshold=0.45,
            label="person",
        )

        assert len(boxes) == 1
        box = boxes[0]
        assert box.x == pytest.approx(0.45)
        assert box.y == pytest.approx(0.4)
        assert box.width == pytest.approx(0.1)
        assert box.height == pytest.approx(0.2)
        assert box.confidence == pytest.approx(0.72)
        assert box.label == "person"

    def test_parse_yolo_v8_transposed(self):
        # (features, anchors): one anchor for class 1
        outputs = np.array([[[320.0], [320.0], [64.0], [64.0], [0.1], [0.95]]], dtype=np.float32)
        boxes = parse_outputs(
            outputs,
            frame_width=640,
            frame_height=640,
            input_size=(640, 640),
            conf_threshold=0.25,
            class_id=1,
            output_format="yolo_v8",
            nms_threshold=0.45,
        )
        assert len(boxes) == 1
        assert boxes[0].center == pytest.approx((0.5, 0.5))


class TestScriptedDetectors:
    def test_static_detector_repeats_boxes(self, make_frame):
        box = BoundingBox(0.4, 0.1, 0.2, 0.8)
        detector = StaticDetector([box])
        assert detector.detect(make_frame(1)) == [box]
        assert detector.detect(make_frame(2)) == [box]
        assert detector.calls == 2

    def test_scripted_detector_raises_steps(self, make_frame):
        detector = ScriptedDetector(script=[[], DetectionBackendError("boom")])
        assert detector.detect(make_frame(1)) == []
        with pytest.raises(DetectionBackendError):
            detector.detect(make_frame(2))
        assert detector.detect(make_frame(3)) == []
        assert detector.frames_seen == [1, 2, 3]


class TestBuildDetector:
    def test_static_boxes_with_confidence(self):
        config = DetectorBackendConfig(type="static", boxes=((0.45, 0.45, 0.05, 0.05, 0.7),))
        detector = build_detector(config, "ball")
        assert isinstance(detector, StaticDetector)
        assert detector.boxes[0].confidence == pytest.approx(0.7)
        assert detector.boxes[0].label == "ball"

    def test_motion_settings_forwarded(self):
        detector = build_detector(DetectorBackendConfig(type="motion", min_area=50), "ball")
        assert isinstance(detector, MotionBallDetector)
        assert detector._config.filters.min_area == 50

    def test_hog_backend(self):
        assert isinstance(build_detector(DetectorBackendConfig(type="hog"), "person"), HogPersonDetector)

    @pytest.mark.parametrize("role,class_id", [("person", COCO_PERSON), ("ball", COCO_SPORTS_BALL)])
    def test_ml_class_defaults_by_role(self, role, class_id):
        detector = build_detector(DetectorBackendConfig(type="ml", model_path="model.onnx"), role)
        assert isinstance(detector, MlDetector)
        assert detector.class_id == class_id

    def test_unknown_type_and_role_rejected(self):
        with pytest.raises(ValueError):
            build_detector(DetectorBackendConfig(type="radar"), "ball")
        with pytest.raises(ValueError):
            build_detector(DetectorBackendConfig(type="static"), "umpire")
