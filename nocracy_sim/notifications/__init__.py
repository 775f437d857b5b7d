"""外发通知：通知器实现与消息模板。"""

from .formatters import StatsSummary
from .notifier import (
    LoggingNotifier,
    NotificationDispatcher,
    Notifier,
    NullNotifier,
    TelegramNotifier,
    default_notifier,
)

__all__ = [
    "LoggingNotifier",
    "NotificationDispatcher",
    "Notifier",
    "NullNotifier",
    "StatsSummary",
    "TelegramNotifier",
    "default_notifier",
]
