"""
Structured Logging and Notification Sinks

DESIGN DECISION: Every store outcome is both logged and shown to the user.
- structlog gives a JSON trail for debugging fallbacks and cache failures
- Notification sinks hand the same outcome to whatever UI is attached

Sinks are fire-and-forget: a sink that fails is logged and ignored, it
never breaks the operation that produced the notification.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import structlog

from finance_tracker.models.notification import (
    Notification,
    NotificationKind,
    NotificationVariant,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `log_level`."""
    logging.basicConfig(format="%(message)s", level=log_level.upper())


class NotificationSink(ABC):
    """
    Receives user-facing notifications.

    Implementations must not raise for ordinary delivery problems;
    the return value is never consumed by the store.
    """

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        pass


class LoggingNotificationSink(NotificationSink):
    """Writes notifications to the structured log."""

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    def notify(self, notification: Notification) -> None:
        log_dict = notification.to_log_dict()

        if notification.kind in (
            NotificationKind.LOAD_FAILED,
            NotificationKind.SAVE_FAILED,
        ):
            self._logger.error("notification", **log_dict)
        elif notification.variant is NotificationVariant.WARNING:
            self._logger.warning("notification", **log_dict)
        else:
            self._logger.info("notification", **log_dict)


class MemoryNotificationSink(NotificationSink):
    """
    Keeps notifications in a list.

    Used by tests and by UIs that render notifications after a rerun.
    """

    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def kinds(self) -> list[NotificationKind]:
        return [n.kind for n in self.notifications]

    @property
    def last(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None

    def drain(self) -> list[Notification]:
        """Return and forget everything received so far."""
        drained, self.notifications = self.notifications, []
        return drained


class CompositeNotificationSink(NotificationSink):
    """Fans each notification out to several sinks."""

    def __init__(self, sinks: Iterable[NotificationSink]):
        self._sinks = list(sinks)
        self._logger = structlog.get_logger(__name__)

    def notify(self, notification: Notification) -> None:
        for sink in self._sinks:
            deliver(sink, notification, self._logger)


def deliver(
    sink: Optional[NotificationSink],
    notification: Notification,
    logger=None,
) -> None:
    """
    Hand a notification to a sink, logging (not raising) if the sink fails.
    """
    if sink is None:
        return
    try:
        sink.notify(notification)
    except Exception as e:
        (logger or structlog.get_logger(__name__)).error(
            "notification_sink_failed",
            error=str(e),
            kind=notification.kind.value,
        )
