"""Tests for shared data contracts."""

from __future__ import annotations

import pytest

from contracts import BoundingBox, StrikeZone, Verdict


def test_box_edges_and_center():
    box = BoundingBox(0.2, 0.1, 0.4, 0.6)
    assert box.min_x == pytest.approx(0.2)
    assert box.max_x == pytest.approx(0.6)
    assert box.min_y == pytest.approx(0.1)
    assert box.max_y == pytest.approx(0.7)
    assert box.center == pytest.approx((0.4, 0.4))
    assert box.area == pytest.approx(0.24)


@pytest.mark.parametrize(
    "width,height",
    [(0.0, 0.5), (0.5, 0.0), (-0.1, 0.5), (0.5, -0.2)],
)
def test_degenerate_boxes(width, height):
    assert BoundingBox(0.1, 0.1, width, height).is_degenerate


def test_contains_box_is_edge_inclusive():
    zone = BoundingBox(0.0, 0.0, 1.0, 1.0)
    assert zone.contains_box(BoundingBox(0.0, 0.0, 1.0, 1.0))
    assert zone.contains_box(BoundingBox(0.9, 0.9, 0.1, 0.1))
    assert not zone.contains_box(BoundingBox(0.95, 0.5, 0.1, 0.1))


def test_contains_point_is_edge_inclusive():
    zone = BoundingBox(0.2, 0.2, 0.2, 0.2)
    assert zone.contains_point(0.2, 0.4)
    assert not zone.contains_point(0.41, 0.3)


def test_confidence_and_label_do_not_affect_equality():
    assert BoundingBox(0.1, 0.2, 0.3, 0.4, confidence=0.2, label="a") == BoundingBox(
        0.1, 0.2, 0.3, 0.4, confidence=0.9, label="b"
    )


def test_from_pixels_flips_rows_to_bottom_left_origin():
    # A box touching the top edge of the image sits at the top of normalized space.
    box = BoundingBox.from_pixels(0, 0, 64, 48, frame_width=640, frame_height=480)
    assert box.x == pytest.approx(0.0)
    assert box.max_y == pytest.approx(1.0)
    assert box.width == pytest.approx(0.1)
    assert box.height == pytest.approx(0.1)

    floor = BoundingBox.from_pixels(320, 432, 64, 48, frame_width=640, frame_height=480)
    assert floor.y == pytest.approx(0.0)
    assert floor.x == pytest.approx(0.5)


def test_to_pixels_inverts_from_pixels():
    box = BoundingBox.from_pixels(100, 40, 60, 200, frame_width=640, frame_height=480)
    assert box.to_pixels(640, 480) == (100, 40, 60, 200)


def test_from_pixels_rejects_empty_frame():
    with pytest.raises(ValueError):
        BoundingBox.from_pixels(0, 0, 1, 1, frame_width=0, frame_height=480)


def test_strike_zone_from_box_keeps_geometry():
    zone = StrikeZone.from_box(BoundingBox(0.35, 0.34, 0.3, 0.32), frame_index=9)
    assert (zone.x, zone.y, zone.width, zone.height) == (0.35, 0.34, 0.3, 0.32)
    assert zone.frame_index == 9


def test_verdict_utterances():
    assert Verdict.STRIKE.utterance == "Strike!"
    assert Verdict.BALL.utterance == "Ball!"
    assert Verdict.INDETERMINATE.utterance is None
    assert not Verdict.INDETERMINATE.is_announceable
    assert Verdict("strike") is Verdict.STRIKE
