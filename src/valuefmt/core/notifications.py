"""Error channel for valuefmt.

A ``Notification`` is a human-readable message about one plugin and one
operation. Failures are never raised to the host; they are emitted on
an ``ErrorChannel`` that the surrounding application subscribes to.
"""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, auto

logger = logging.getLogger(__name__)

Subscriber = Callable[["Notification"], None]


class NotificationSeverity(Enum):
    """How serious a notification is."""

    ERROR = auto()
    WARNING = auto()


_LOG_LEVELS: dict[NotificationSeverity, int] = {
    NotificationSeverity.ERROR: logging.ERROR,
    NotificationSeverity.WARNING: logging.WARNING,
}


@dataclass(frozen=True)
class Notification:
    """A single error or diagnostic emitted by the formatter host.

    Parameters
    ----------
    severity:
        ``ERROR`` for a failed operation, ``WARNING`` for a diagnostic
        that did not fail anything (e.g. plugin stderr output).
    message:
        Human-readable description, including the raw plugin output or
        process error where one exists.
    plugin:
        Formatter name or plugin directory the message is about.
    operation:
        ``"load"``, ``"info"``, ``"decode"``, ``"encode"`` or ``"validate"``.
    """

    severity: NotificationSeverity
    message: str
    plugin: str = field(default="")
    operation: str = field(default="")

    def __str__(self) -> str:
        return self.message

    @property
    def is_error(self) -> bool:
        """Return True if this notification reports a failed operation."""
        return self.severity == NotificationSeverity.ERROR


class ErrorChannel:
    """Fan-out of notifications to subscribers.

    Every emitted notification is also logged and kept in a bounded
    history.

    Parameters
    ----------
    history_size:
        Maximum number of notifications retained in ``history``.
    """

    def __init__(self, history_size: int = 256) -> None:
        self._subscribers: list[Subscriber] = []
        self._history: deque[Notification] = deque(maxlen=history_size)

    def subscribe(self, callback: Subscriber) -> None:
        """Register ``callback`` to receive every future notification."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        """Stop delivering notifications to ``callback``; unknown callbacks are ignored."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def history(self) -> list[Notification]:
        """Notifications emitted so far, oldest first."""
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()

    def emit(self, notification: Notification) -> None:
        """Log ``notification`` and hand it to each subscriber in turn."""
        logger.log(_LOG_LEVELS[notification.severity], "%s", notification.message)
        self._history.append(notification)
        for subscriber in list(self._subscribers):
            try:
                subscriber(notification)
            except Exception:
                logger.exception("Notification subscriber %r failed", subscriber)

    def error(self, message: str, *, plugin: str = "", operation: str = "") -> None:
        self.emit(Notification(NotificationSeverity.ERROR, message, plugin, operation))

    def warning(self, message: str, *, plugin: str = "", operation: str = "") -> None:
        self.emit(Notification(NotificationSeverity.WARNING, message, plugin, operation))
