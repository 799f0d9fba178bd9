"""
CHIME Reminder Scheduler - Persistence-First Alarm Orchestration

Responsibilities:
- Persist every accepted reminder BEFORE arming its alarm
- Cancel alarms before forgetting their records
- Bulk cancel, recovery delegation, pending count
- Never raise to the caller; failures degrade to a logged False

Ordering rules:
- schedule: put -> arm   (a crash in between leaves a recoverable record)
- cancel:   disarm -> remove (a crash in between leaves the record visible)
"""

import logging
from typing import Any, Callable, Optional

from chime.memory.reminder_models import (
    ReminderRecord,
    create_record,
    current_time_ms,
)
from chime.memory.reminder_store import ReminderStore
from chime.results import OpResult
from .alarm_driver import AlarmDriver
from .recovery import RecoveryCoordinator, RecoveryReport

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """
    Maps logical reminders onto platform alarms.

    The store is the source of truth. An alarm registration is only a cache
    of one stored record and can always be rebuilt from it, which is what
    reschedule_all() does after a restart.
    """

    def __init__(
        self,
        store: ReminderStore,
        driver: AlarmDriver,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize reminder scheduler.

        Args:
            store: Durable reminder storage
            driver: Alarm driver over the platform timer service
            clock: Epoch-ms time source (default: wall clock), injected for testability
        """
        self.store = store
        self.driver = driver
        self._clock = clock or current_time_ms
        self.recovery = RecoveryCoordinator(self, clock=self._clock)
        logger.info("ReminderScheduler initialized")

    # ------------------------------------------------------------------
    # Shared primitives
    # ------------------------------------------------------------------

    def arm_record(self, record: ReminderRecord) -> OpResult:
        """Arm the alarm derived from a stored record"""
        return self.driver.arm(record.id, record.trigger_time_ms, record.alarm_payload())

    def advance(self, record: ReminderRecord, next_trigger_ms: int) -> OpResult:
        """
        Move a still-stored reminder to a new trigger time and re-arm it.

        Used by firing and recovery. If the reminder was canceled in the
        meantime nothing is written or armed.

        Returns:
            OpResult with the ArmMode on success, data None if the reminder
            is gone, failure if arming failed
        """
        moved = record.with_trigger(next_trigger_ms, scheduled_at=self._clock())
        saved = self.store.replace_if_present(moved)

        if saved and not saved.data:
            logger.info(f"Reminder {record.id} was canceled, not advancing")
            return OpResult.ok(None)
        if not saved:
            logger.warning(f"Could not persist advanced reminder {record.id}, arming anyway")

        return self.arm_record(moved)

    # ------------------------------------------------------------------
    # Boundary operations
    # ------------------------------------------------------------------

    def schedule(
        self,
        reminder_id: int,
        title: str,
        body: str,
        trigger_time_ms: int,
        priority: Any = "high",
        repeat_policy: Any = "none"
    ) -> bool:
        """
        Schedule (or overwrite) a reminder.

        The record is persisted first no matter what arming does afterwards,
        so a later recovery pass can retry.

        Args:
            reminder_id: Caller-assigned request code
            title: Notification title
            body: Notification body
            trigger_time_ms: Absolute trigger time, epoch ms
            priority: "low", "medium", "high"
            repeat_policy: "none", "daily", "weekly"

        Returns:
            True if the alarm was armed (directly or via fallback)
        """
        try:
            record = create_record(
                reminder_id, title, body, trigger_time_ms, priority, repeat_policy
            )
        except (TypeError, ValueError) as e:
            logger.error(f"Rejected reminder id={reminder_id!r}: {e}")
            return False

        if not record.repeat_policy.is_implemented:
            logger.warning(
                f"Repeat policy '{record.repeat_policy.value}' is not implemented; "
                f"reminder {record.id} will fire once"
            )

        saved = self.store.put(record)
        if not saved:
            logger.warning(f"Reminder {record.id} not persisted ({saved.error}), arming anyway")

        armed = self.arm_record(record)
        if armed:
            logger.info(
                f"Scheduled reminder {record.id} at {record.trigger_time_ms} "
                f"({armed.data.value}, repeat={record.repeat_policy.value})"
            )
        else:
            logger.error(f"Reminder {record.id} stored but not armed: {armed.error}")
        return armed.success

    def cancel(self, reminder_id: int) -> bool:
        """
        Cancel a reminder. Unknown ids are a no-op.

        Returns:
            True if both disarm and removal succeeded
        """
        disarmed = self.driver.disarm(reminder_id)
        removed = self.store.remove(reminder_id)

        if removed and removed.data:
            logger.info(f"Reminder cancelled: id={reminder_id}")
        elif removed:
            logger.debug(f"Cancel for unknown reminder id={reminder_id}")
        return disarmed.success and removed.success

    def cancel_all(self) -> int:
        """
        Cancel every stored reminder, then clear the store unconditionally.

        Returns:
            Number of reminders a cancel was attempted for
        """
        reminder_ids = list(self.store.get_all().keys())

        for reminder_id in reminder_ids:
            try:
                self.cancel(reminder_id)
            except Exception as e:
                logger.error(f"Cancel failed for id={reminder_id}: {e}", exc_info=True)

        cleared = self.store.clear()
        if not cleared:
            logger.error(f"Could not clear reminder store: {cleared.error}")

        logger.info(f"All alarms cancelled ({len(reminder_ids)})")
        return len(reminder_ids)

    def reschedule_all(self, now_ms: Optional[int] = None) -> RecoveryReport:
        """
        Rebuild every alarm from the store after a restart.

        Args:
            now_ms: Current time override, injected for testability
        """
        try:
            return self.recovery.run(now_ms=now_ms)
        except Exception as e:
            logger.error(f"Reschedule pass failed: {e}", exc_info=True)
            return RecoveryReport()

    def pending_count(self) -> int:
        """Number of stored reminders"""
        return self.store.count()

    def can_schedule_exact(self) -> bool:
        """Whether precise alarms are currently permitted"""
        return self.driver.can_schedule_exact()

