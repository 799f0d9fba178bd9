"""
CHIME Start - Console Host Entry Point

This wires:
- ReminderStore (~/.chime/native_reminders.json, or the path given as argv[1])
- ThreadedTimerService + AlarmDriver
- ReminderScheduler + RecoveryCoordinator
- ConsoleNotifier as the firing surface
- BootHandler: every start is treated as a restart and rebuilds alarms
- MethodDispatcher: typed commands are turned into UI-layer method calls

Commands:
    in <minutes> <text>     one-shot reminder
    daily <HH:MM> <text>    daily reminder at the next HH:MM
    list                    show stored reminders
    cancel <id>             cancel one reminder
    clear                   cancel everything
    count                   pending reminder count
    exact                   precise alarm capability
    test                    schedule the diagnostic reminder (60 s)
    quit
"""

import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from chime.host import BootHandler, MethodDispatcher, create_runtime
from chime.host.boot import ACTION_BOOT_COMPLETED

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _next_id(runtime) -> int:
    existing = runtime.store.get_all()
    return max(existing, default=0) + 1


def _next_daily(hhmm: str) -> datetime:
    hour, minute = (int(part) for part in hhmm.split(":", 1))
    now = datetime.now()
    moment = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if moment <= now:
        moment += timedelta(days=1)
    return moment


def print_reminders(runtime):
    """Show every stored reminder, soonest first"""
    reminders = sorted(runtime.store.get_all().values(), key=lambda r: r.trigger_time_ms)
    if not reminders:
        print("  (no reminders)")
        return

    for reminder in reminders:
        when = datetime.fromtimestamp(reminder.trigger_time_ms / 1000)
        print(
            f"  #{reminder.id:<5} {when:%Y-%m-%d %H:%M}  "
            f"[{reminder.repeat_policy.value}/{reminder.priority.value}]  {reminder.title}"
        )


def process_command(runtime, dispatcher: MethodDispatcher, line: str):
    """Translate one typed command into a dispatcher call"""
    command, _, rest = line.partition(" ")
    command = command.lower()
    rest = rest.strip()

    if command == "in":
        minutes, _, text = rest.partition(" ")
        due = datetime.now() + timedelta(minutes=float(minutes))
        result = dispatcher.handle('scheduleNativeReminder', {
            'requestCode': _next_id(runtime),
            'title': text or None,
            'body': text,
            'triggerTimeMs': _epoch_ms(due),
        })
        print(f"  ✓ Scheduled for {due:%H:%M:%S}" if result.value else "  ✗ Not armed (saved for retry)")

    elif command == "daily":
        hhmm, _, text = rest.partition(" ")
        due = _next_daily(hhmm)
        result = dispatcher.handle('scheduleNativeReminder', {
            'requestCode': _next_id(runtime),
            'title': text or None,
            'body': text,
            'triggerTimeMs': _epoch_ms(due),
            'repeatPolicy': "daily",
        })
        print(f"  ✓ Daily from {due:%Y-%m-%d %H:%M}" if result.value else "  ✗ Not armed (saved for retry)")

    elif command == "list":
        print_reminders(runtime)

    elif command == "cancel":
        dispatcher.handle('cancelNativeReminder', {'requestCode': int(rest)})
        print("  ✓ Cancelled")

    elif command == "clear":
        dispatcher.handle('cancelAllNativeReminders')
        print("  ✓ All reminders cancelled")

    elif command == "count":
        print(f"  {dispatcher.handle('getPendingReminderCount').value} pending")

    elif command == "exact":
        print(f"  Exact alarms permitted: {dispatcher.handle('canScheduleExactAlarms').value}")

    elif command == "test":
        result = dispatcher.handle('scheduleTestReminder')
        print("  ✓ Test reminder in 60 seconds" if result.value else "  ✗ Test reminder not armed")

    else:
        print(f"  Unknown command: {command}")
        print(__doc__.split("Commands:", 1)[1])


def main(storage_path: Optional[Path] = None) -> int:
    """
    Main CHIME entry point.
    """
    print("=" * 70)
    print("CHIME - Native Reminder Engine")
    print("=" * 70)
    print()

    try:
        logger.info("Initializing CHIME...")
        runtime = create_runtime(storage_path=storage_path)
        dispatcher = MethodDispatcher(runtime.scheduler, runtime.notifier, clock=runtime.clock)
        boot = BootHandler(runtime.scheduler, runtime.notifier)
    except Exception as e:
        logger.error(f"Failed to initialize CHIME: {e}", exc_info=True)
        return 1

    report = boot.on_receive(ACTION_BOOT_COMPLETED)
    if report is not None:
        print(f"Recovered reminders: {report.rescheduled} active, {report.expired} expired\n")

    while True:
        try:
            user_input = input("chime> ").strip()

            if not user_input:
                continue

            if user_input.lower() in ["quit", "exit", "q"]:
                print("\nGoodbye!")
                break

            process_command(runtime, dispatcher, user_input)

        except (EOFError, KeyboardInterrupt):
            print("\n\nInterrupted. Goodbye!")
            break
        except (TypeError, ValueError) as e:
            print(f"\n  Invalid input: {e}\n")
        except Exception as e:
            logger.error(f"Error in main loop: {e}", exc_info=True)
            print(f"\nError: {e}\n")

    runtime.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main(Path(sys.argv[1]) if len(sys.argv) > 1 else None))
