"""
CHIME Alarm Driver - Platform Timer Abstraction

Responsibilities:
- Arm a wake-capable, idle-tolerant one-shot timer at an ABSOLUTE time
- Prefer precise timers when the platform permits them
- Degrade to inexact timers instead of failing; a late fire beats no fire
- Disarm idempotently
- NO persistence, NO repeat policy, NO notification display
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Optional

from chime.results import ErrorKind, OpResult

logger = logging.getLogger(__name__)


AlarmCallback = Callable[[int, Dict[str, Any]], Any]


class TimerServiceError(Exception):
    """Raised by a TimerService when the platform rejects a request"""
    pass


class ArmMode(Enum):
    """How an alarm ended up registered"""
    EXACT = "exact"
    INEXACT = "inexact"
    FALLBACK = "fallback"


class TimerService(ABC):
    """
    Abstract platform alarm primitive.

    Implementations register at most one pending alarm per id; arming an id
    again replaces the earlier registration. When an alarm elapses the
    service invokes the callback given to set_callback() with
    (alarm_id, payload).
    """

    @abstractmethod
    def arm_exact(self, trigger_at_ms: int, alarm_id: int, payload: Dict[str, Any]) -> None:
        """Register a precise, idle-tolerant wake-up at trigger_at_ms"""
        pass

    @abstractmethod
    def arm_inexact(self, trigger_at_ms: int, alarm_id: int, payload: Dict[str, Any]) -> None:
        """Register an idle-tolerant wake-up the platform may deliver late"""
        pass

    @abstractmethod
    def disarm(self, alarm_id: int) -> None:
        """Remove a registration; unknown ids are ignored"""
        pass

    @abstractmethod
    def can_schedule_exact(self) -> bool:
        """Whether the platform currently permits precise alarms"""
        pass

    @abstractmethod
    def set_callback(self, callback: Optional[AlarmCallback]) -> None:
        """Install the handler invoked when an alarm elapses"""
        pass


class AlarmDriver:
    """
    Arms and disarms reminder alarms on a TimerService.

    Precision policy:
    1. Exact permitted -> arm_exact
    2. Exact denied    -> arm_inexact
    3. Either raises   -> one retry with arm_inexact
    4. Retry raises    -> failed OpResult (kind ARMING)

    The exact-permission check is a collaborator: by default it asks the
    TimerService, and callers may inject their own.
    """

    def __init__(
        self,
        timer_service: TimerService,
        exact_permission: Optional[Callable[[], bool]] = None
    ):
        """
        Initialize alarm driver.

        Args:
            timer_service: Platform alarm primitive
            exact_permission: Override for the precise-alarm capability check
        """
        self.timer_service = timer_service
        self._exact_permission = exact_permission or timer_service.can_schedule_exact
        logger.info(f"AlarmDriver initialized ({type(timer_service).__name__})")

    def can_schedule_exact(self) -> bool:
        """Capability check; a failing check counts as 'not permitted'"""
        try:
            return bool(self._exact_permission())
        except Exception as e:
            logger.warning(f"Exact alarm capability check failed: {e}")
            return False

    def arm(self, alarm_id: int, trigger_at_ms: int, payload: Dict[str, Any]) -> OpResult:
        """
        Arm an alarm at an absolute epoch-ms timestamp.

        Args:
            alarm_id: Reminder id (one registration per id)
            trigger_at_ms: Absolute wall-clock trigger time
            payload: Data handed back to the firing callback

        Returns:
            OpResult whose data is the ArmMode used
        """
        try:
            if self.can_schedule_exact():
                self.timer_service.arm_exact(trigger_at_ms, alarm_id, payload)
                logger.debug(f"Exact alarm scheduled: id={alarm_id} time={trigger_at_ms}")
                return OpResult.ok(ArmMode.EXACT)

            self.timer_service.arm_inexact(trigger_at_ms, alarm_id, payload)
            logger.warning(f"Exact alarm NOT permitted, using inexact: id={alarm_id}")
            return OpResult.ok(ArmMode.INEXACT)

        except Exception as e:
            logger.error(f"Schedule FAILED id={alarm_id}: {e}")

        # Last resort
        try:
            self.timer_service.arm_inexact(trigger_at_ms, alarm_id, payload)
            logger.info(f"Fallback alarm scheduled: id={alarm_id}")
            return OpResult.ok(ArmMode.FALLBACK)
        except Exception as e:
            logger.error(f"Even fallback schedule FAILED id={alarm_id}: {e}")
            return OpResult.fail(ErrorKind.ARMING, str(e))

    def disarm(self, alarm_id: int) -> OpResult:
        """
        Remove an alarm registration. Unknown ids are a no-op.

        Returns:
            OpResult; failure kind is ARMING if the platform call raised
        """
        try:
            self.timer_service.disarm(alarm_id)
            logger.debug(f"Alarm disarmed: id={alarm_id}")
            return OpResult.ok()
        except Exception as e:
            logger.error(f"Disarm error id={alarm_id}: {e}")
            return OpResult.fail(ErrorKind.ARMING, str(e))
