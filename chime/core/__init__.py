"""
CHIME Core - Scheduling and Recovery Engine

Alarm driver, scheduler, restart recovery and the firing protocol.
"""

from .alarm_driver import (
    AlarmDriver,
    ArmMode,
    TimerService,
    TimerServiceError,
)
from .scheduler import ReminderScheduler
from .recovery import RecoveryCoordinator, RecoveryReport
from .firing import AlarmFiringHandler, FireOutcome, Notifier

__all__ = [
    # Alarm driver
    'AlarmDriver',
    'ArmMode',
    'TimerService',
    'TimerServiceError',
    # Scheduler
    'ReminderScheduler',
    # Recovery
    'RecoveryCoordinator',
    'RecoveryReport',
    # Firing
    'AlarmFiringHandler',
    'FireOutcome',
    'Notifier',
]
