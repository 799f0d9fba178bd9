"""
Tests for CHIME Recovery Pass

Tests the restart repair rules with an injected clock:
- Future reminders re-armed unchanged
- Expired daily reminders advanced past now (multi-day gaps)
- Expired one-shots removed
- One bad record never stops the pass
"""

import json
import logging
import tempfile

from chime.core import RecoveryReport
from chime.memory import DAY_MS, RepeatPolicy
from tests.fakes import BASE_TIME_MS, Harness

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

T = BASE_TIME_MS


def _restart(h):
    """Simulate a reboot: the platform forgets every alarm"""
    h.timer.armed.clear()
    h.timer.calls.clear()


def test_future_reminder_untouched():
    """Future reminders keep every field and are re-armed"""
    print("\n" + "="*70)
    print("TEST 1: Future Reminder")
    print("="*70)

    with tempfile.TemporaryDirectory() as tmpdir:
        h = Harness(tmpdir)
        h.scheduler.schedule(1, "Later", "body", T + DAY_MS, "low", "daily")
        before = h.store.get(1)
        _restart(h)

        report = h.scheduler.reschedule_all(now_ms=T)

        assert h.store.get(1) == before
        assert h.timer.armed[1]['at'] == T + DAY_MS
        assert report.rescheduled == 1 and report.expired == 0
        print("✓ Identical record, re-armed at stored time")

    print("\n✅ Future reminder test PASSED")


def test_daily_advancement_on_recovery():
    """Expired daily reminders jump to the first occurrence after now"""
    print("\n" + "="*70)
    print("TEST 2: Daily Advancement")
    print("="*70)

    with tempfile.TemporaryDirectory() as tmpdir:
        h = Harness(tmpdir)

        print("\n[2.1] Device off for three days...")
        h.scheduler.schedule(5, "Pills", "", T, "high", "daily")
        _restart(h)
        now = T + 3 * DAY_MS + 12345
        report = h.scheduler.reschedule_all(now_ms=now)

        record = h.store.get(5)
        assert record.trigger_time_ms == T + 4 * DAY_MS
        assert record.repeat_policy == RepeatPolicy.DAILY
        assert h.timer.armed[5]['at'] == T + 4 * DAY_MS
        assert report.rescheduled == 1
        print("✓ Advanced to T + 4 days and armed")

        print("\n[2.2] Now exactly on the trigger...")
        h.scheduler.schedule(6, "Edge", "", T, "high", "daily")
        _restart(h)
        h.scheduler.reschedule_all(now_ms=T)
        assert h.store.get(6).trigger_time_ms == T + DAY_MS
        print("✓ Trigger equal to now counts as expired")

        print("\n[2.3] Many gaps...")
        for k in (0, 1, 10):
            for r in (0, 1, DAY_MS - 1):
                h.scheduler.schedule(7, "Grid", "", T, "high", "daily")
                h.scheduler.reschedule_all(now_ms=T + k * DAY_MS + r)
                assert h.store.get(7).trigger_time_ms == T + (k + 1) * DAY_MS, (k, r)
        print("✓ Smallest day multiple past now every time")

    print("\n✅ Daily advancement test PASSED")


def test_one_shot_cleanup():
    """Expired one-shot reminders disappear"""
    print("\n" + "="*70)
    print("TEST 3: One-Shot Cleanup")
    print("="*70)

    with tempfile.TemporaryDirectory() as tmpdir:
        h = Harness(tmpdir)
        h.scheduler.schedule(1, "Missed", "", T - 1000, "high", "none")
        h.scheduler.schedule(2, "Weekly", "", T - 1000, "high", "weekly")
        h.scheduler.schedule(3, "Upcoming", "", T + 1000)
        _restart(h)

        report = h.scheduler.reschedule_all(now_ms=T)

        assert h.store.get(1) is None
        assert h.store.get(2) is None
        assert 1 not in h.timer.armed and 2 not in h.timer.armed
        assert 3 in h.timer.armed
        assert report.expired == 2
        assert report.rescheduled == 1
        assert h.scheduler.pending_count() == 1
        print("✓ Expired one-shots (and weekly) removed without arming")

        print("\n[3.1] Re-scheduled after the snapshot was taken...")
        h.scheduler.schedule(4, "Missed", "", T - 1000)
        snapshot = h.store.get(4)
        h.scheduler.schedule(4, "Fresh", "", T + DAY_MS)
        report = RecoveryReport()
        h.scheduler.recovery._recover(snapshot, T, report)
        assert h.store.get(4).title == "Fresh"
        assert h.timer.armed[4]['at'] == T + DAY_MS
        assert report.expired == 0 and report.failed == 0
        print("✓ Newer record left in place")

    print("\n✅ One-shot cleanup test PASSED")


def test_recovery_isolation():
    """Failures on one record do not stop the rest"""
    print("\n" + "="*70)
    print("TEST 4: Recovery Isolation")
    print("="*70)

    with tempfile.TemporaryDirectory() as tmpdir:
        h = Harness(tmpdir)
        h.scheduler.schedule(1, "Good", "", T + 1000)
        h.scheduler.schedule(2, "Also good", "", T - 1000, "high", "daily")

        print("\n[4.1] Malformed record in the blob...")
        raw = json.loads(h.storage_path.read_text(encoding='utf-8'))
        raw["scheduled_reminders"]["3"] = {"id": 3, "title": "broken", "triggerTimeMs": "soon"}
        h.storage_path.write_text(json.dumps(raw), encoding='utf-8')
        _restart(h)

        report = h.scheduler.reschedule_all(now_ms=T)
        assert set(h.timer.armed.keys()) == {1, 2}
        assert report.rescheduled == 2
        print("✓ Malformed entry skipped")

        print("\n[4.2] Arming fails for everything...")
        _restart(h)
        h.timer.fail_exact = True
        h.timer.fail_inexact = True
        report = h.scheduler.reschedule_all(now_ms=T)
        assert report.failed == 2
        assert h.store.get(1) is not None and h.store.get(2) is not None
        print("✓ Records kept for the next pass")

        print("\n[4.3] Empty store...")
        h.scheduler.cancel_all()
        report = h.scheduler.reschedule_all(now_ms=T)
        assert report.total == 0
        print("✓ Nothing to recover")

    print("\n✅ Recovery isolation test PASSED")


def run_all_tests():
    """Run all recovery tests"""
    try:
        test_future_reminder_untouched()
        test_daily_advancement_on_recovery()
        test_one_shot_cleanup()
        test_recovery_isolation()
        print("\n✅ ALL RECOVERY TESTS PASSED")
        return True
    except AssertionError as e:
        logger.error(f"Assertion failed: {e}", exc_info=True)
    except Exception as e:
        logger.error(f"Test failed: {e}", exc_info=True)
    return False


if __name__ == "__main__":
    raise SystemExit(0 if run_all_tests() else 1)
