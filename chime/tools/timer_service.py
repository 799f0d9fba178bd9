"""
CHIME Threaded Timer Service - In-Process Alarm Primitive

A TimerService backed by threading.Timer, for desktop hosts and the
console entry point. Registrations live only as long as the process;
the recovery pass rebuilds them from the store on the next start.

Inexact alarms are rounded up to the next window boundary, the way a
platform batches idle-tolerant wake-ups.
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from chime.core.alarm_driver import AlarmCallback, TimerService, TimerServiceError
from chime.memory.reminder_models import current_time_ms

logger = logging.getLogger(__name__)


class ThreadedTimerService(TimerService):
    """
    One daemon threading.Timer per alarm id.

    Thread-safety:
    - Registrations are guarded by a lock; the callback runs outside it
    """

    DEFAULT_INEXACT_WINDOW_MS = 60_000

    def __init__(
        self,
        allow_exact: bool = True,
        inexact_window_ms: int = DEFAULT_INEXACT_WINDOW_MS,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize timer service.

        Args:
            allow_exact: Whether precise alarms are permitted
            inexact_window_ms: Batching window for inexact alarms
            clock: Epoch-ms time source (default: wall clock)
        """
        if inexact_window_ms <= 0:
            raise ValueError("inexact_window_ms must be positive")

        self.allow_exact = allow_exact
        self.inexact_window_ms = inexact_window_ms
        self._clock = clock or current_time_ms
        self._callback: Optional[AlarmCallback] = None
        self._timers: Dict[int, threading.Timer] = {}
        self._lock = threading.Lock()

        logger.info(
            f"ThreadedTimerService initialized (allow_exact={allow_exact}, "
            f"inexact_window_ms={inexact_window_ms})"
        )

    def set_callback(self, callback: Optional[AlarmCallback]) -> None:
        self._callback = callback

    def can_schedule_exact(self) -> bool:
        return self.allow_exact

    def arm_exact(self, trigger_at_ms: int, alarm_id: int, payload: Dict[str, Any]) -> None:
        if not self.allow_exact:
            raise TimerServiceError("Exact alarms are not permitted")
        self._register(alarm_id, trigger_at_ms, payload)

    def arm_inexact(self, trigger_at_ms: int, alarm_id: int, payload: Dict[str, Any]) -> None:
        window = self.inexact_window_ms
        batched = -(-trigger_at_ms // window) * window
        self._register(alarm_id, batched, payload)

    def disarm(self, alarm_id: int) -> None:
        with self._lock:
            timer = self._timers.pop(alarm_id, None)
        if timer is not None:
            timer.cancel()

    def pending_ids(self):
        """Ids with a live registration"""
        with self._lock:
            return sorted(self._timers)

    def shutdown(self):
        """Cancel every registration"""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        logger.info(f"ThreadedTimerService stopped ({len(timers)} timers cancelled)")

    def _register(self, alarm_id: int, trigger_at_ms: int, payload: Dict[str, Any]):
        delay_s = max(0, trigger_at_ms - self._clock()) / 1000.0
        timer = threading.Timer(delay_s, self._fire, args=(alarm_id, dict(payload)))
        timer.daemon = True

        with self._lock:
            previous = self._timers.pop(alarm_id, None)
            self._timers[alarm_id] = timer
        if previous is not None:
            previous.cancel()

        timer.start()
        logger.debug(f"Timer registered: id={alarm_id} in {delay_s:.1f}s")

    def _fire(self, alarm_id: int, payload: Dict[str, Any]):
        with self._lock:
            current = self._timers.get(alarm_id)
            if current is threading.current_thread():
                del self._timers[alarm_id]

        callback = self._callback
        if callback is None:
            logger.warning(f"Alarm {alarm_id} elapsed with no callback installed")
            return

        try:
            callback(alarm_id, payload)
        except Exception as e:
            logger.error(f"Alarm callback failed for id={alarm_id}: {e}", exc_info=True)
