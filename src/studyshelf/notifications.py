"""User-facing notification collaborators."""

from __future__ import annotations

import logging
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    """Anything that can surface a short message to the user."""

    def notify(self, title: str, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that records messages in the application log."""

    def notify(self, title: str, message: str) -> None:
        LOGGER.info("%s: %s", title, message)


class RecordingNotifier:
    """Notifier that keeps every message in memory, newest last."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, title: str, message: str) -> None:
        self.messages.append((title, message))


__all__ = ["Notifier", "LoggingNotifier", "RecordingNotifier"]
