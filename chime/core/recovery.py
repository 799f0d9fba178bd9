"""
CHIME Recovery Coordinator - Restart Repair Pass

Runs once after every process or device restart. Platform alarms do not
survive a reboot, so every alarm is re-derived from the stored records:

1. Future trigger           -> re-arm unchanged
2. Past trigger, daily      -> advance by whole days past now, persist, arm
3. Past trigger, otherwise  -> remove (expired one-shot)

Each record is handled independently; one failure never stops the pass.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from chime.memory.reminder_models import (
    ReminderRecord,
    current_time_ms,
    next_daily_trigger,
)

if TYPE_CHECKING:
    from .scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


@dataclass
class RecoveryReport:
    """Counts from one recovery pass (observability only)"""
    rescheduled: int = 0
    expired: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.rescheduled + self.expired + self.failed


class RecoveryCoordinator:
    """
    Re-derives alarm registrations from persisted reminders.

    Shares the scheduler's arm / advance primitives so recovery and firing
    converge on the same per-reminder state machine.
    """

    def __init__(
        self,
        scheduler: 'ReminderScheduler',
        clock: Optional[Callable[[], int]] = None
    ):
        self.scheduler = scheduler
        self._clock = clock or current_time_ms

    def run(self, now_ms: Optional[int] = None) -> RecoveryReport:
        """
        Execute one recovery pass.

        Args:
            now_ms: Current time override (default: clock())

        Returns:
            RecoveryReport with rescheduled / expired / failed counts
        """
        now = now_ms if now_ms is not None else self._clock()
        records = self.scheduler.store.get_all()
        report = RecoveryReport()

        for record in records.values():
            try:
                self._recover(record, now, report)
            except Exception as e:
                report.failed += 1
                logger.error(f"Reschedule error for id={record.id}: {e}", exc_info=True)

        logger.info(
            f"Reschedule complete: {report.rescheduled} rescheduled, "
            f"{report.expired} expired, {report.failed} failed"
        )
        return report

    def _recover(self, record: ReminderRecord, now: int, report: RecoveryReport):
        if not record.is_expired(now):
            armed = self.scheduler.arm_record(record)
            if armed:
                report.rescheduled += 1
            else:
                report.failed += 1
            return

        if record.repeat_policy.repeats_daily:
            next_trigger = next_daily_trigger(record.trigger_time_ms, now)
            logger.debug(
                f"Advancing daily reminder {record.id}: "
                f"{record.trigger_time_ms} -> {next_trigger}"
            )
            advanced = self.scheduler.advance(record, next_trigger)
            if not advanced:
                report.failed += 1
            elif advanced.data is None:
                report.expired += 1
            else:
                report.rescheduled += 1
            return

        if not record.repeat_policy.is_implemented:
            logger.debug(
                f"Reminder {record.id} has unimplemented repeat "
                f"'{record.repeat_policy.value}', expiring as one-shot"
            )

        removed = self.scheduler.store.remove_if_unchanged(record)
        if not removed:
            report.failed += 1
        elif removed.data:
            report.expired += 1
        else:
            logger.info(f"Reminder {record.id} changed during recovery, leaving it in place")
