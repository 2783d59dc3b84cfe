"""Notification events sent to the user during a compaction."""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from loguru import logger


class Severity(str, Enum):
    info = "info"
    warning = "warning"


@dataclass
class Notification:
    """A fire-and-forget message for the user."""

    message: str
    severity: Severity = Severity.info


class Notifier(Protocol):
    """Anything that can show a notification. Must not block or raise."""

    def notify(self, message: str, severity: Severity = Severity.info) -> None: ...


class LogNotifier:
    """Notifier that only writes to the log."""

    def notify(self, message: str, severity: Severity = Severity.info) -> None:
        if severity == Severity.warning:
            logger.warning(message)
        else:
            logger.info(message)


class RecordingNotifier:
    """Notifier that keeps every notification, for hosts that display them later."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(self, message: str, severity: Severity = Severity.info) -> None:
        self.notifications.append(Notification(message=message, severity=severity))
