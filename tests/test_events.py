"""Tests for user notifications."""

from loguru import logger

from compactbot.bus.events import LogNotifier, Notification, RecordingNotifier, Severity


def test_recording_notifier_keeps_order():
    notifier = RecordingNotifier()
    notifier.notify("bash: ls")
    notifier.notify("No model available for compaction", Severity.warning)
    assert notifier.notifications == [
        Notification("bash: ls", Severity.info),
        Notification("No model available for compaction", Severity.warning),
    ]


def test_log_notifier_uses_severity_level():
    records = []
    sink = logger.add(lambda m: records.append(m.record["level"].name), level="INFO")
    try:
        LogNotifier().notify("started")
        LogNotifier().notify("failed", Severity.warning)
    finally:
        logger.remove(sink)
    assert records == ["INFO", "WARNING"]
