"""
Fusion Portal Core - Notifications.

Collects the user-visible outcome of every action (the portal's toasts).
Presentation is up to the caller; this only records and logs them.
"""

import logging
import threading
from collections import deque

from fusion_portal.schemas import Notification

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.WARNING,
}


class Notifier:
    """Bounded buffer of pending notifications."""

    def __init__(self, max_items: int = 200):
        self._items: deque[Notification] = deque(maxlen=max_items)
        self._lock = threading.Lock()

    def notify(self, level: str, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        with self._lock:
            self._items.append(notification)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), f"[notify:{level}] {message}")
        return notification

    def success(self, message: str) -> Notification:
        return self.notify("success", message)

    def info(self, message: str) -> Notification:
        return self.notify("info", message)

    def warning(self, message: str) -> Notification:
        return self.notify("warning", message)

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    def peek(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def drain(self) -> list[Notification]:
        """Return and clear pending notifications."""
        with self._lock:
            items = list(self._items)
            self._items.clear()
        return items
