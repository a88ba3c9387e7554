"""Logging and notification package."""

from finance_tracker.notifications.logger import (
    CompositeNotificationSink,
    LoggingNotificationSink,
    MemoryNotificationSink,
    NotificationSink,
    configure_logging,
    deliver,
)

__all__ = [
    "CompositeNotificationSink",
    "LoggingNotificationSink",
    "MemoryNotificationSink",
    "NotificationSink",
    "configure_logging",
    "deliver",
]
