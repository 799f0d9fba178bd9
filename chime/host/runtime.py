"""
CHIME Runtime - Component Wiring

Builds store, driver, scheduler and firing handler, and installs the
firing handler as the timer service's callback.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from chime.core import (
    AlarmDriver,
    AlarmFiringHandler,
    Notifier,
    ReminderScheduler,
    TimerService,
)
from chime.memory import ReminderStore, current_time_ms
from chime.tools import ConsoleNotifier, ThreadedTimerService

logger = logging.getLogger(__name__)


@dataclass
class ReminderRuntime:
    """Fully wired reminder engine"""
    store: ReminderStore
    timer_service: TimerService
    driver: AlarmDriver
    scheduler: ReminderScheduler
    notifier: Notifier
    firing: AlarmFiringHandler
    clock: Callable[[], int]

    def shutdown(self):
        """Detach the firing handler from the timer service"""
        self.timer_service.set_callback(None)
        stop = getattr(self.timer_service, 'shutdown', None)
        if callable(stop):
            stop()


def create_runtime(
    storage_path: Optional[Path] = None,
    notifier: Optional[Notifier] = None,
    timer_service: Optional[TimerService] = None,
    clock: Optional[Callable[[], int]] = None,
    exact_permission: Optional[Callable[[], bool]] = None
) -> ReminderRuntime:
    """
    Assemble the reminder engine.

    Args:
        storage_path: Reminder file (default: ~/.chime/native_reminders.json)
        notifier: Notification surface (default: ConsoleNotifier)
        timer_service: Alarm primitive (default: ThreadedTimerService)
        clock: Epoch-ms time source (default: wall clock)
        exact_permission: Override for the precise-alarm capability check

    Returns:
        ReminderRuntime with the firing handler already installed
    """
    clock = clock or current_time_ms
    store = ReminderStore(storage_path=storage_path)
    timer_service = timer_service or ThreadedTimerService(clock=clock)
    notifier = notifier or ConsoleNotifier()

    driver = AlarmDriver(timer_service, exact_permission=exact_permission)
    scheduler = ReminderScheduler(store, driver, clock=clock)
    firing = AlarmFiringHandler(scheduler, notifier)
    timer_service.set_callback(firing)

    logger.info("Reminder runtime ready")
    return ReminderRuntime(
        store=store,
        timer_service=timer_service,
        driver=driver,
        scheduler=scheduler,
        notifier=notifier,
        firing=firing,
        clock=clock,
    )
