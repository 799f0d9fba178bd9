"""
Tests for CHIME Host Glue

Tests:
- MethodDispatcher routing and argument defaults
- BootHandler recovery on known and unknown actions
- Runtime wiring with the threaded timer service and console notifier
"""

import io
import logging
import tempfile
import threading
from pathlib import Path

from chime.core import FireOutcome
from chime.host import BOOT_ACTIONS, BootHandler, MethodDispatcher, create_runtime
from chime.host.dispatcher import TEST_REMINDER_DELAY_MS, TEST_REMINDER_ID
from chime.memory import DAY_MS, RepeatPolicy
from chime.tools import ConsoleNotifier, ThreadedTimerService, notification_level
from tests.fakes import BASE_TIME_MS, FakeTimerService, FixedClock, Harness

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

T = BASE_TIME_MS


def test_dispatcher():
    """Test method routing"""
    print("\n" + "="*70)
    print("TEST 1: Method Dispatcher")
    print("="*70)

    with tempfile.TemporaryDirectory() as tmpdir:
        h = Harness(tmpdir)
        dispatcher = MethodDispatcher(h.scheduler, h.notifier, clock=h.clock)

        print("\n[1.1] scheduleNativeReminder...")
        result = dispatcher.handle('scheduleNativeReminder', {
            'requestCode': 42,
            'title': "Hi",
            'body': "there",
            'triggerTimeMs': float(T + 5000),
            'repeatPolicy': "daily",
        })
        assert result.success and result.value is True
        record = h.store.get(42)
        assert record.trigger_time_ms == T + 5000
        assert record.repeat_policy == RepeatPolicy.DAILY
        print("✓ Scheduled with numeric coercion")

        print("\n[1.2] Defaults...")
        result = dispatcher.handle('scheduleNativeReminder', {})
        assert result.success
        defaulted = h.store.get(0)
        assert defaulted.title == "Reminder"
        assert defaulted.body == ""
        assert defaulted.trigger_time_ms == 0
        assert defaulted.priority.value == "high"
        assert defaulted.repeat_policy.value == "none"
        print("✓ Missing arguments defaulted")

        print("\n[1.3] Count, cancel, cancel all...")
        assert dispatcher.handle('getPendingReminderCount').value == 2
        assert dispatcher.handle('cancelNativeReminder', {'requestCode': 0}).value is True
        assert dispatcher.handle('getPendingReminderCount').value == 1
        assert dispatcher.handle('cancelAllNativeReminders').value is True
        assert dispatcher.handle('getPendingReminderCount').value == 0
        print("✓ Boundary operations routed")

        print("\n[1.4] Exact capability is real...")
        assert dispatcher.handle('canScheduleExactAlarms').value is True
        h.timer.allow_exact = False
        assert dispatcher.handle('canScheduleExactAlarms').value is False
        print("✓ Reflects the timer service")

        print("\n[1.5] Test reminder...")
        assert dispatcher.handle('scheduleTestReminder').value is True
        test_record = h.store.get(TEST_REMINDER_ID)
        assert test_record.trigger_time_ms == T + TEST_REMINDER_DELAY_MS
        print("✓ Diagnostic reminder one minute out")

        print("\n[1.6] Notifications...")
        assert dispatcher.handle('showBubble', {'id': 3, 'body': "yo"}).value is True
        assert h.notifier.shown[-1] == (3, "Reminder", "yo", "high")
        h.notifier.fail_show = True
        assert dispatcher.handle('showBubble', {'id': 4, 'title': "T"}).success
        assert h.notifier.fallbacks[-1] == (4, "T", "")
        assert dispatcher.handle('cancelBubble', {'id': 3}).value is True
        assert h.notifier.cancelled == [3]
        assert dispatcher.handle('createBubbleChannel').value is True
        assert h.notifier.prepared == 1
        assert dispatcher.handle('areBubblesSupported').value is False
        print("✓ Notifier methods routed")

        print("\n[1.7] Bad input and unknown methods...")
        bad = dispatcher.handle('scheduleNativeReminder', {'requestCode': "nope"})
        assert not bad.success and bad.error
        unknown = dispatcher.handle('requestBatteryOptimization')
        assert unknown.not_implemented and not unknown.success
        assert 'requestBatteryOptimization' not in dispatcher.methods
        print("✓ Errors reported, never raised")

    print("\n✅ Dispatcher test PASSED")


def test_boot_handler():
    """Test restart handling"""
    print("\n" + "="*70)
    print("TEST 2: Boot Handler")
    print("="*70)

    with tempfile.TemporaryDirectory() as tmpdir:
        clock = FixedClock(T)
        h = Harness(tmpdir, clock=clock)
        h.scheduler.schedule(1, "Daily", "", T - 1000, "high", "daily")
        h.scheduler.schedule(2, "Missed", "", T - 1000)
        h.timer.armed.clear()
        boot = BootHandler(h.scheduler, h.notifier)

        print("\n[2.1] Boot completed...")
        assert "android.intent.action.BOOT_COMPLETED" in BOOT_ACTIONS
        report = boot.on_receive("android.intent.action.BOOT_COMPLETED")
        assert report.rescheduled == 1 and report.expired == 1
        assert h.store.get(1).trigger_time_ms == T - 1000 + DAY_MS
        assert h.notifier.prepared == 1
        print("✓ Recovery ran, channel prepared")

        print("\n[2.2] Unknown action still recovers...")
        h.timer.armed.clear()
        report = boot.on_receive("com.example.SOMETHING_ELSE")
        assert report.rescheduled == 1
        assert 1 in h.timer.armed
        assert boot.on_receive(None) is not None
        print("✓ Reschedules anyway")

    print("\n✅ Boot handler test PASSED")


def test_runtime_wiring():
    """Test a real threaded runtime end to end"""
    print("\n" + "="*70)
    print("TEST 3: Runtime Wiring")
    print("="*70)

    with tempfile.TemporaryDirectory() as tmpdir:
        stream = io.StringIO()
        fired = threading.Event()
        outcomes = []

        runtime = create_runtime(
            storage_path=Path(tmpdir) / "native_reminders.json",
            notifier=ConsoleNotifier(stream=stream),
        )
        handler = runtime.firing

        def _record_fire(alarm_id, payload):
            outcomes.append(handler(alarm_id, payload))
            fired.set()

        runtime.timer_service.set_callback(_record_fire)

        try:
            print("\n[3.1] Immediate one-shot fires on a timer thread...")
            now = runtime.clock()
            assert runtime.scheduler.schedule(1, "Now", "right now", now - 1)
            assert fired.wait(timeout=5), "alarm never fired"
            assert outcomes == [FireOutcome.COMPLETED]
            assert "Now" in stream.getvalue()
            assert runtime.scheduler.pending_count() == 0
            print("✓ Fired, shown and cleaned up")

            print("\n[3.2] Far-future alarm stays pending until cancel...")
            assert runtime.scheduler.schedule(2, "Later", "", now + DAY_MS)
            assert runtime.timer_service.pending_ids() == [2]
            runtime.scheduler.cancel(2)
            assert runtime.timer_service.pending_ids() == []
            print("✓ Registration replaced by cancel")
        finally:
            runtime.shutdown()

    print("\n✅ Runtime wiring test PASSED")


def test_threaded_timer_service():
    """Test the in-process timer primitive"""
    print("\n" + "="*70)
    print("TEST 4: Threaded Timer Service")
    print("="*70)

    clock = FixedClock(0)
    service = ThreadedTimerService(allow_exact=False, inexact_window_ms=60_000, clock=clock)
    try:
        print("\n[4.1] Exact denied...")
        assert service.can_schedule_exact() is False
        try:
            service.arm_exact(1000, 1, {})
        except Exception:
            pass
        else:
            raise AssertionError("arm_exact should be refused")
        print("✓ Refused")

        print("\n[4.2] Inexact registration and re-arm...")
        service.arm_inexact(1, 1, {})
        service.arm_inexact(2, 1, {})
        assert service.pending_ids() == [1]
        service.disarm(1)
        service.disarm(1)
        assert service.pending_ids() == []
        print("✓ One registration per id; disarm idempotent")
    finally:
        service.shutdown()

    print("\n[4.3] Priority levels...")
    assert notification_level("low") == "default"
    assert notification_level("medium") == "high"
    assert notification_level("anything") == "max"
    print("✓ Priority mapped to importance")

    print("\n✅ Threaded timer service test PASSED")


def run_all_tests():
    """Run all host tests"""
    try:
        test_dispatcher()
        test_boot_handler()
        test_runtime_wiring()
        test_threaded_timer_service()
        print("\n✅ ALL HOST TESTS PASSED")
        return True
    except AssertionError as e:
        logger.error(f"Assertion failed: {e}", exc_info=True)
    except Exception as e:
        logger.error(f"Test failed: {e}", exc_info=True)
    return False


if __name__ == "__main__":
    raise SystemExit(0 if run_all_tests() else 1)
