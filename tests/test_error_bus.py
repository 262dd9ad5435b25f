"""Unit tests for the error event bus."""

import unittest
from unittest.mock import Mock

from app.events import (
    ErrorCategory,
    ErrorEvent,
    ErrorEventBus,
    ErrorSeverity,
    get_error_bus,
    publish_error,
)


def detection_event(message="Detector failed", severity=ErrorSeverity.WARNING):
    return ErrorEvent(
        category=ErrorCategory.DETECTION,
        severity=severity,
        message=message,
        source="FramePipeline.person_detector",
    )


class TestErrorEvent(unittest.TestCase):
    """Test ErrorEvent formatting."""

    def test_string_includes_context(self):
        event = ErrorEvent(
            category=ErrorCategory.CALIBRATION,
            severity=ErrorSeverity.WARNING,
            message="Batter box has zero area",
            source="FramePipeline.calibrate",
            exception=ValueError("zero"),
        )

        text = str(event)
        self.assertIn("WARNING", text)
        self.assertIn("calibration", text)
        self.assertIn("Batter box has zero area", text)
        self.assertIn("ValueError", text)

    def test_defaults(self):
        event = detection_event()
        self.assertIsNone(event.exception)
        self.assertEqual(event.metadata, {})
        self.assertIsInstance(event.timestamp, float)


class TestErrorEventBus(unittest.TestCase):
    """Test subscription, history and counts."""

    def setUp(self):
        self.bus = ErrorEventBus(max_history=10)

    def test_category_subscription_filters_events(self):
        callback = Mock()
        self.bus.subscribe(callback, category=ErrorCategory.ANNOUNCEMENT)

        self.bus.publish(detection_event())
        announcement = ErrorEvent(
            category=ErrorCategory.ANNOUNCEMENT,
            severity=ErrorSeverity.WARNING,
            message="espeak exited with 1",
            source="AnnouncementQueue",
        )
        self.bus.publish(announcement)

        callback.assert_called_once_with(announcement)

    def test_global_subscriber_sees_everything(self):
        callback = Mock()
        self.bus.subscribe(callback)

        self.bus.publish(detection_event())
        self.bus.publish(detection_event(severity=ErrorSeverity.CRITICAL))

        self.assertEqual(callback.call_count, 2)

    def test_unsubscribe(self):
        callback = Mock()
        self.bus.subscribe(callback, category=ErrorCategory.DETECTION)
        self.bus.unsubscribe(callback, category=ErrorCategory.DETECTION)

        self.bus.publish(detection_event())

        callback.assert_not_called()

    def test_history_is_bounded_and_ordered(self):
        for i in range(15):
            self.bus.publish(detection_event(message=f"failure {i}"))

        history = self.bus.get_history()
        self.assertEqual(len(history), 10)
        self.assertEqual(history[0].message, "failure 5")
        self.assertEqual(history[-1].message, "failure 14")
        self.assertEqual(len(self.bus.get_history(limit=3)), 3)

    def test_counts_survive_history_trimming(self):
        for _ in range(12):
            self.bus.publish(detection_event())

        self.assertEqual(self.bus.get_error_counts()[ErrorCategory.DETECTION], 12)

        self.bus.clear_history()
        self.assertEqual(self.bus.get_history(), [])
        self.assertEqual(self.bus.get_error_counts(), {})

    def test_failing_subscriber_is_isolated(self):
        def broken(event):
            raise RuntimeError("subscriber bug")

        healthy = Mock()
        self.bus.subscribe(broken)
        self.bus.subscribe(healthy)

        self.bus.publish(detection_event())

        healthy.assert_called_once()


class TestPublishError(unittest.TestCase):
    """Test the module-level helpers."""

    def test_get_error_bus_is_singleton(self):
        self.assertIs(get_error_bus(), get_error_bus())

    def test_publish_to_explicit_bus(self):
        bus = ErrorEventBus()
        publish_error(
            category=ErrorCategory.PIPELINE,
            severity=ErrorSeverity.ERROR,
            message="worker crashed",
            source="PipelineRunner.worker",
            bus=bus,
            frame_index=12,
        )

        (event,) = bus.get_history()
        self.assertEqual(event.category, ErrorCategory.PIPELINE)
        self.assertEqual(event.metadata, {"frame_index": 12})

    def test_publish_to_global_bus(self):
        callback = Mock()
        bus = get_error_bus()
        bus.subscribe(callback, category=ErrorCategory.CONFIG)
        try:
            publish_error(
                category=ErrorCategory.CONFIG,
                severity=ErrorSeverity.INFO,
                message="using built-in defaults",
                source="configs.settings",
            )
        finally:
            bus.unsubscribe(callback, category=ErrorCategory.CONFIG)

        callback.assert_called_once()
        self.assertEqual(callback.call_args[0][0].message, "using built-in defaults")


if __name__ == "__main__":
    unittest.main()
