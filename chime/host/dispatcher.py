"""
CHIME Method Dispatcher - UI Layer Boundary

Routes named method calls from the application's UI layer onto the
scheduler and notifier. Argument defaults mirror what the UI layer sends
when it omits a field.

Responsibilities:
- Method-name routing and argument defaulting
- NO scheduling logic, NO rendering, NO permission prompts
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from chime.core import Notifier, ReminderScheduler
from chime.memory.reminder_models import DEFAULT_TITLE, current_time_ms
from chime.results import ErrorKind

logger = logging.getLogger(__name__)


TEST_REMINDER_ID = 99999
TEST_REMINDER_DELAY_MS = 60_000
TEST_REMINDER_TITLE = "Chime Test 🧪"
TEST_REMINDER_BODY = "Test reminder fired! Notifications work on your device ✅"


@dataclass
class MethodResult:
    """Reply to one method call"""
    success: bool
    value: Any = None
    error: Optional[str] = None
    not_implemented: bool = False


class MethodDispatcher:
    """
    Name -> handler routing table for UI-layer calls.

    handle() never raises; any failure becomes MethodResult(success=False).
    """

    def __init__(
        self,
        scheduler: ReminderScheduler,
        notifier: Notifier,
        clock: Optional[Callable[[], int]] = None
    ):
        self.scheduler = scheduler
        self.notifier = notifier
        self._clock = clock or current_time_ms
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            # Notifications
            'showBubble': self._show_bubble,
            'cancelBubble': self._cancel_bubble,
            'areBubblesSupported': self._are_bubbles_supported,
            'createBubbleChannel': self._create_bubble_channel,
            # Native reminder scheduling
            'scheduleNativeReminder': self._schedule_reminder,
            'cancelNativeReminder': self._cancel_reminder,
            'cancelAllNativeReminders': self._cancel_all_reminders,
            'getPendingReminderCount': self._pending_count,
            'canScheduleExactAlarms': self._can_schedule_exact,
            # Diagnostics
            'scheduleTestReminder': self._schedule_test_reminder,
        }
        logger.info(f"MethodDispatcher initialized ({len(self._handlers)} methods)")

    @property
    def methods(self):
        return sorted(self._handlers)

    def handle(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> MethodResult:
        """
        Dispatch one method call.

        Args:
            method: Method name sent by the UI layer
            arguments: Named arguments (missing ones take defaults)

        Returns:
            MethodResult with the handler's value
        """
        handler = self._handlers.get(method)
        if handler is None:
            logger.warning(f"Method not implemented: {method}")
            return MethodResult(success=False, not_implemented=True)

        try:
            value = handler(arguments or {})
            return MethodResult(success=True, value=value)
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid arguments for {method}: {e}")
            return MethodResult(
                success=False,
                error=f"{ErrorKind.INVALID_ARGUMENT.value}: {e}"
            )
        except Exception as e:
            logger.error(f"Method {method} failed: {e}", exc_info=True)
            return MethodResult(success=False, error=str(e))

    # ------------------------------------------------------------------
    # Argument helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _int_arg(arguments: Dict[str, Any], name: str, default: int = 0) -> int:
        value = arguments.get(name)
        if value is None:
            return default
        if isinstance(value, bool):
            raise TypeError(f"{name} must be a number")
        return int(value)

    @staticmethod
    def _str_arg(arguments: Dict[str, Any], name: str, default: str) -> str:
        value = arguments.get(name)
        return default if value is None else str(value)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _show_bubble(self, arguments):
        notif_id = self._int_arg(arguments, 'id')
        title = self._str_arg(arguments, 'title', DEFAULT_TITLE)
        body = self._str_arg(arguments, 'body', "")
        priority = self._str_arg(arguments, 'priority', "high")
        try:
            self.notifier.show(notif_id, title, body, priority)
        except Exception as e:
            logger.error(f"showBubble FAILED id={notif_id}: {e}")
            self.notifier.show_fallback(notif_id, title, body)
        return True

    def _cancel_bubble(self, arguments):
        self.notifier.cancel(self._int_arg(arguments, 'id'))
        return True

    def _are_bubbles_supported(self, arguments):
        return bool(self.notifier.supports_bubbles())

    def _create_bubble_channel(self, arguments):
        self.notifier.prepare()
        return True

    def _schedule_reminder(self, arguments):
        return self.scheduler.schedule(
            self._int_arg(arguments, 'requestCode'),
            self._str_arg(arguments, 'title', DEFAULT_TITLE),
            self._str_arg(arguments, 'body', ""),
            self._int_arg(arguments, 'triggerTimeMs'),
            self._str_arg(arguments, 'priority', "high"),
            self._str_arg(arguments, 'repeatPolicy', "none"),
        )

    def _cancel_reminder(self, arguments):
        self.scheduler.cancel(self._int_arg(arguments, 'requestCode'))
        return True

    def _cancel_all_reminders(self, arguments):
        self.scheduler.cancel_all()
        return True

    def _pending_count(self, arguments):
        return self.scheduler.pending_count()

    def _can_schedule_exact(self, arguments):
        return self.scheduler.can_schedule_exact()

    def _schedule_test_reminder(self, arguments):
        return self.scheduler.schedule(
            TEST_REMINDER_ID,
            TEST_REMINDER_TITLE,
            TEST_REMINDER_BODY,
            self._clock() + TEST_REMINDER_DELAY_MS,
            "high",
            "none",
        )
