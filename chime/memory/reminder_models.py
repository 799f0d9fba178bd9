"""
CHIME Reminder Models

Data structures for the native reminder engine.

Philosophy:
- One persisted entity, keyed by a caller-assigned integer id
- The stored record is the source of truth; alarms are derived from it
- Forward compatible: unknown priority / repeat values normalize on read
"""

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


DAY_MS = 24 * 60 * 60 * 1000

DEFAULT_TITLE = "Reminder"
DEFAULT_BODY = "Hey! You have a reminder"


def current_time_ms() -> int:
    """Wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


class Priority(Enum):
    """Notification priority requested for a reminder"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def normalize(cls, value: Any) -> 'Priority':
        """Map any input onto a Priority; unknown values become HIGH"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            if value is not None:
                logger.debug(f"Unknown priority {value!r}, using 'high'")
            return cls.HIGH


class RepeatPolicy(Enum):
    """
    Recurrence rule attached to a reminder.

    Only NONE and DAILY have defined behavior. WEEKLY is accepted and
    persisted so the caller's intent survives a round trip, but it fires
    once like NONE.
    """
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"

    @classmethod
    def normalize(cls, value: Any) -> 'RepeatPolicy':
        """Map any input onto a RepeatPolicy; unknown values become NONE"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            if value is not None:
                logger.debug(f"Unknown repeat policy {value!r}, using 'none'")
            return cls.NONE

    @property
    def is_implemented(self) -> bool:
        return self is not RepeatPolicy.WEEKLY

    @property
    def repeats_daily(self) -> bool:
        return self is RepeatPolicy.DAILY


@dataclass
class ReminderRecord:
    """
    A single scheduled reminder.

    trigger_time_ms is absolute wall-clock time in epoch milliseconds and may
    lie in the past between a restart and the next recovery pass.
    scheduled_at is informational only.
    """
    id: int
    title: str
    body: str
    trigger_time_ms: int
    priority: Priority = Priority.HIGH
    repeat_policy: RepeatPolicy = RepeatPolicy.NONE
    scheduled_at: int = field(default_factory=current_time_ms)

    def __post_init__(self):
        """Validate and normalize record data"""
        if isinstance(self.id, bool) or not isinstance(self.id, int):
            raise TypeError(f"Reminder id must be int, got {type(self.id).__name__}")
        if isinstance(self.trigger_time_ms, bool) or not isinstance(self.trigger_time_ms, int):
            raise TypeError("trigger_time_ms must be int (epoch ms)")
        if not self.title or not str(self.title).strip():
            self.title = DEFAULT_TITLE
        if self.body is None:
            self.body = ""
        self.priority = Priority.normalize(self.priority)
        self.repeat_policy = RepeatPolicy.normalize(self.repeat_policy)

    def is_expired(self, now_ms: int) -> bool:
        """True once the trigger time is no longer strictly in the future"""
        return self.trigger_time_ms <= now_ms

    def with_trigger(self, trigger_time_ms: int, scheduled_at: Optional[int] = None) -> 'ReminderRecord':
        """Copy of this record moved to a new trigger time"""
        return replace(
            self,
            trigger_time_ms=trigger_time_ms,
            scheduled_at=scheduled_at if scheduled_at is not None else current_time_ms()
        )

    def alarm_payload(self) -> Dict[str, Any]:
        """Everything the firing path needs, keyed like the alarm extras"""
        return {
            'requestCode': self.id,
            'title': self.title,
            'body': self.body,
            'priority': self.priority.value,
            'repeatPolicy': self.repeat_policy.value,
            'triggerTimeMs': self.trigger_time_ms,
        }

    def to_dict(self) -> dict:
        """Convert to the persisted JSON shape"""
        return {
            'id': self.id,
            'title': self.title,
            'body': self.body,
            'triggerTimeMs': self.trigger_time_ms,
            'priority': self.priority.value,
            'repeatPolicy': self.repeat_policy.value,
            'scheduledAt': self.scheduled_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ReminderRecord':
        """
        Create a record from its persisted JSON shape.

        Raises:
            KeyError, TypeError, ValueError: If a required field is missing
                or has the wrong type
        """
        return cls(
            id=int(data['id']),
            title=str(data['title'] or ""),
            body=str(data.get('body') or ""),
            trigger_time_ms=int(data['triggerTimeMs']),
            priority=Priority.normalize(data.get('priority')),
            repeat_policy=RepeatPolicy.normalize(data.get('repeatPolicy')),
            scheduled_at=int(data.get('scheduledAt') or 0)
        )


def next_daily_trigger(trigger_time_ms: int, now_ms: int) -> int:
    """
    Smallest trigger_time_ms + k * DAY_MS (k >= 1) strictly after now_ms.

    For now = T + k*DAY + r with 0 <= r < DAY this returns T + (k+1)*DAY.
    A trigger already in the future is returned unchanged.
    """
    if trigger_time_ms > now_ms:
        return trigger_time_ms
    days_behind = (now_ms - trigger_time_ms) // DAY_MS
    return trigger_time_ms + (days_behind + 1) * DAY_MS


def create_record(
    reminder_id: int,
    title: str,
    body: str,
    trigger_time_ms: int,
    priority: Any = "high",
    repeat_policy: Any = "none",
) -> ReminderRecord:
    """
    Factory function to create a new record from boundary arguments.

    Args:
        reminder_id: Caller-assigned request code
        title: Notification title (defaults when empty)
        body: Notification body text
        trigger_time_ms: Absolute trigger time, epoch ms
        priority: "low", "medium" or "high" (anything else -> high)
        repeat_policy: "none", "daily" or "weekly" (anything else -> none)

    Returns:
        New ReminderRecord stamped with the current time
    """
    return ReminderRecord(
        id=reminder_id,
        title=title,
        body=body,
        trigger_time_ms=trigger_time_ms,
        priority=priority,
        repeat_policy=repeat_policy,
        scheduled_at=current_time_ms()
    )
