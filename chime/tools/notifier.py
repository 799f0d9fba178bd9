"""
CHIME Console Notifier

A Notifier that surfaces reminders on the terminal. Rich styling, bubbles
and shortcuts belong to the platform notifier; this one only knows how
loud a reminder should be.
"""

import logging
import sys
import threading
from typing import Dict, Optional, TextIO

from chime.core.firing import Notifier
from chime.memory.reminder_models import Priority

logger = logging.getLogger(__name__)


# Notification importance per reminder priority
PRIORITY_LEVELS = {
    Priority.LOW: "default",
    Priority.MEDIUM: "high",
    Priority.HIGH: "max",
}


def notification_level(priority: str) -> str:
    """Map a reminder priority onto a notification importance level"""
    return PRIORITY_LEVELS[Priority.normalize(priority)]


class ConsoleNotifier(Notifier):
    """
    Prints reminders to a text stream.

    Tracks which notification ids are currently on screen so cancel()
    has something to act on.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._visible: Dict[int, str] = {}
        self._lock = threading.Lock()
        self._prepared = False

    def prepare(self) -> None:
        if not self._prepared:
            self._prepared = True
            logger.info("Console notification channel ready")

    def show(self, notif_id: int, title: str, body: str, priority: str = "high") -> None:
        self.prepare()
        level = notification_level(priority)
        marker = "⏰" if level == "max" else "🔔"

        with self._lock:
            self._visible[notif_id] = title
            self.stream.write("\n" + "=" * 70 + "\n")
            self.stream.write(f"{marker} {title}\n")
            if body:
                self.stream.write(f"  {body}\n")
            self.stream.write("=" * 70 + "\n")
            self.stream.flush()

        logger.debug(f"Notification shown id={notif_id} level={level}")

    def show_fallback(self, notif_id: int, title: str, body: str) -> None:
        with self._lock:
            self._visible[notif_id] = title
            self.stream.write(f"[{title}] {body}\n")
            self.stream.flush()

    def cancel(self, notif_id: int) -> None:
        with self._lock:
            removed = self._visible.pop(notif_id, None)
        if removed is not None:
            logger.debug(f"Notification cancelled id={notif_id}")

    def visible_ids(self):
        with self._lock:
            return sorted(self._visible)
