"""
CHIME Alarm Firing - What Happens When a Timer Elapses

Responsibilities:
- Show the reminder through the Notifier (with a simpler fallback path)
- Apply the repeat policy: daily -> next day, otherwise -> forget
- Keep display and bookkeeping in separate failure domains

A fire that arrives after its reminder was canceled is a no-op; it must
not show anything or bring the reminder back. A fire that cannot read the
store still shows the reminder from the alarm payload and leaves the
store alone.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

from chime.memory.reminder_models import DAY_MS, DEFAULT_BODY, DEFAULT_TITLE, Priority
from .scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """
    Abstract notification surface.

    show() may fail (rich styles, bubbles, missing permissions);
    show_fallback() is the plain path used when it does.
    """

    @abstractmethod
    def show(self, notif_id: int, title: str, body: str, priority: str = "high") -> None:
        pass

    @abstractmethod
    def show_fallback(self, notif_id: int, title: str, body: str) -> None:
        pass

    @abstractmethod
    def cancel(self, notif_id: int) -> None:
        pass

    def prepare(self) -> None:
        """Create channels or other one-time setup; no-op by default"""
        pass

    def supports_bubbles(self) -> bool:
        return False


class FireOutcome(Enum):
    """Result of handling one elapsed alarm"""
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    STALE = "stale"
    DEGRADED = "degraded"


class AlarmFiringHandler:
    """
    Callback installed on the TimerService.

    The stored record, not the alarm payload, decides repeat behavior; the
    payload fills in a body the record left empty, and stands in for the
    whole record when the store cannot be read.
    """

    def __init__(self, scheduler: ReminderScheduler, notifier: Notifier):
        self.scheduler = scheduler
        self.notifier = notifier
        logger.info("AlarmFiringHandler initialized")

    def __call__(self, alarm_id: int, payload: Optional[Dict[str, Any]] = None) -> FireOutcome:
        return self.on_alarm(alarm_id, payload)

    def on_alarm(self, alarm_id: int, payload: Optional[Dict[str, Any]] = None) -> FireOutcome:
        """
        Handle an elapsed alarm.

        Args:
            alarm_id: Reminder id the alarm was armed for
            payload: Extras captured when the alarm was armed

        Returns:
            FireOutcome describing what happened to the reminder
        """
        payload = payload or {}
        logger.debug(f"Alarm fired: id={alarm_id} payload={payload}")

        found = self.scheduler.store.lookup(alarm_id)
        if not found:
            logger.warning(
                f"Alarm {alarm_id} fired but its record is unavailable ({found.error}), "
                f"showing from alarm payload"
            )
            self._display(
                alarm_id,
                payload.get('title') or DEFAULT_TITLE,
                payload.get('body') or DEFAULT_BODY,
                Priority.normalize(payload.get('priority')).value,
            )
            return FireOutcome.DEGRADED

        record = found.data
        if record is None:
            logger.warning(f"Alarm {alarm_id} fired for a reminder that no longer exists, ignoring")
            return FireOutcome.STALE

        body = record.body or payload.get('body') or DEFAULT_BODY
        self._display(alarm_id, record.title, body, record.priority.value)

        if record.repeat_policy.repeats_daily and record.trigger_time_ms > 0:
            next_trigger = record.trigger_time_ms + DAY_MS
            logger.info(f"Rescheduling daily alarm id={alarm_id} for next day")
            advanced = self.scheduler.advance(record, next_trigger)
            if advanced and advanced.data is None:
                return FireOutcome.STALE
            if not advanced:
                logger.error(f"Daily reminder {alarm_id} stored for {next_trigger} but not armed")
            return FireOutcome.RESCHEDULED

        removed = self.scheduler.store.remove_if_unchanged(record)
        if not removed:
            logger.error(f"Could not clean up one-shot reminder {alarm_id}: {removed.error}")
        elif removed.data:
            logger.info(f"One-shot alarm cleaned up: id={alarm_id}")
        else:
            logger.info(f"Reminder {alarm_id} was re-scheduled while firing, keeping it")
        return FireOutcome.COMPLETED

    def _display(self, alarm_id: int, title: str, body: str, priority: str) -> bool:
        """Show the notification; never raises"""
        try:
            self.notifier.show(alarm_id, title, body, priority)
            logger.debug(f"Notification shown for id={alarm_id}")
            return True
        except Exception as e:
            logger.error(f"Show notification FAILED id={alarm_id}: {e}")

        try:
            self.notifier.show_fallback(alarm_id, title, body)
            logger.info(f"Fallback notification shown for id={alarm_id}")
            return True
        except Exception as e:
            logger.error(f"Even basic fallback FAILED id={alarm_id}: {e}", exc_info=True)
            return False
