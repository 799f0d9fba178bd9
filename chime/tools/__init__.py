"""
CHIME Tools - Host Integration Layer

Concrete timer and notification services for running outside a mobile
platform.
"""

from .notifier import ConsoleNotifier, notification_level
from .timer_service import ThreadedTimerService

__all__ = [
    'ConsoleNotifier',
    'notification_level',
    'ThreadedTimerService',
]
