"""
CHIME Boot Handler - Restart Signal Entry Point

Platform alarms are wiped on reboot, app update and similar events. This
handler rebuilds them from the store. It runs under a host deadline, so it
never waits on anything but the recovery pass itself and never raises.
"""

import logging
from typing import Optional

from chime.core import Notifier, RecoveryReport, ReminderScheduler

logger = logging.getLogger(__name__)


ACTION_BOOT_COMPLETED = "android.intent.action.BOOT_COMPLETED"
ACTION_QUICKBOOT_POWERON = "android.intent.action.QUICKBOOT_POWERON"
ACTION_HTC_QUICKBOOT_POWERON = "com.htc.intent.action.QUICKBOOT_POWERON"
ACTION_MY_PACKAGE_REPLACED = "android.intent.action.MY_PACKAGE_REPLACED"
ACTION_LOCKED_BOOT_COMPLETED = "android.intent.action.LOCKED_BOOT_COMPLETED"

BOOT_ACTIONS = frozenset({
    ACTION_BOOT_COMPLETED,
    ACTION_QUICKBOOT_POWERON,
    ACTION_HTC_QUICKBOOT_POWERON,
    ACTION_MY_PACKAGE_REPLACED,
    ACTION_LOCKED_BOOT_COMPLETED,
})


class BootHandler:
    """Runs the recovery pass when a restart signal arrives"""

    def __init__(self, scheduler: ReminderScheduler, notifier: Optional[Notifier] = None):
        self.scheduler = scheduler
        self.notifier = notifier

    def on_receive(self, action: Optional[str]) -> Optional[RecoveryReport]:
        """
        Handle a restart signal.

        Unknown actions still trigger recovery; rebuilding alarms twice is
        harmless, missing them is not.

        Args:
            action: Broadcast action name

        Returns:
            RecoveryReport, or None if the pass could not run at all
        """
        action = action or "unknown"
        if action in BOOT_ACTIONS:
            logger.info(f"Restart signal received: {action}")
        else:
            logger.warning(f"Unexpected restart action: {action}, rescheduling anyway")

        try:
            if self.notifier is not None:
                self.notifier.prepare()

            report = self.scheduler.reschedule_all()
            count = self.scheduler.pending_count()
            logger.info(f"Boot reschedule complete. {count} reminders active.")
            return report
        except Exception as e:
            logger.error(f"Boot reschedule FAILED: {e}", exc_info=True)
            return None
