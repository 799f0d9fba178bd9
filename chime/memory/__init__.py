"""
CHIME Memory - Durable Reminder Records

The store owns the authoritative copy of every reminder.
"""

from .reminder_models import (
    DAY_MS,
    Priority,
    RepeatPolicy,
    ReminderRecord,
    create_record,
    current_time_ms,
    next_daily_trigger,
)
from .reminder_store import ReminderStore, ReminderStoreError

__all__ = [
    'DAY_MS',
    'Priority',
    'RepeatPolicy',
    'ReminderRecord',
    'create_record',
    'current_time_ms',
    'next_daily_trigger',
    'ReminderStore',
    'ReminderStoreError',
]
