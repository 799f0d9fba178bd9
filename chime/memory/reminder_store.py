"""
CHIME Reminder Store - Persistent JSON Storage

Handles reading and writing reminders to ~/.chime/native_reminders.json

Design:
- One aggregate blob under a fixed namespace key, mapping str(id) -> record
- Every public call is a single read-modify-write under one lock
- Graceful corruption recovery (back up, start fresh, keep accepting writes)
- Public methods never raise; failures come back as OpResult
"""

import json
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Optional

from chime.results import ErrorKind, OpResult
from .reminder_models import ReminderRecord

logger = logging.getLogger(__name__)


class ReminderStoreError(Exception):
    """Base exception for reminder storage errors"""
    pass


class ReminderStore:
    """
    File-based reminder storage using JSON.

    Storage location: ~/.chime/native_reminders.json

    Layout:
        {"scheduled_reminders": {"42": {"id": 42, "title": ..., ...}}}

    Thread-safety:
    - The whole aggregate is one blob, so every read-modify-write
      holds the same RLock end to end
    """

    DEFAULT_STORAGE_DIR = Path.home() / ".chime"
    DEFAULT_STORAGE_FILE = "native_reminders.json"
    NAMESPACE_KEY = "scheduled_reminders"

    def __init__(self, storage_path: Optional[Path] = None):
        """
        Initialize reminder store.

        Args:
            storage_path: Custom storage file path (default: ~/.chime/native_reminders.json)
        """
        if storage_path:
            self.storage_path = Path(storage_path)
        else:
            self.storage_path = self.DEFAULT_STORAGE_DIR / self.DEFAULT_STORAGE_FILE

        self._lock = threading.RLock()

        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            if not self.storage_path.exists():
                self._initialize_storage()
        except (OSError, ReminderStoreError) as e:
            # Reads degrade to empty and writes report PERSISTENCE until the path is usable
            logger.error(f"Reminder storage unavailable at {self.storage_path}: {e}")

        logger.info(f"ReminderStore initialized: {self.storage_path}")

    # ------------------------------------------------------------------
    # Raw blob access (caller holds the lock)
    # ------------------------------------------------------------------

    def _initialize_storage(self):
        """Create empty storage file"""
        try:
            self._write_blob({})
            logger.info("Initialized empty reminder storage")
        except ReminderStoreError as e:
            logger.error(f"Failed to initialize storage: {e}")
            raise

    def _read_blob(self, strict: bool = False) -> Dict[str, dict]:
        """
        Load the raw id -> dict mapping.

        Corrupt JSON is backed up and replaced with an empty store.

        Args:
            strict: Raise after a corruption reset instead of reading as empty

        Raises:
            ReminderStoreError: If storage cannot be read at all, or was
                reset while strict
        """
        try:
            with open(self.storage_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupted JSON in reminder storage: {e}")
            self._backup_and_reset()
            if strict:
                raise ReminderStoreError(f"Reminder storage was corrupt and has been reset: {e}") from e
            return {}
        except FileNotFoundError:
            logger.warning("Storage file not found, initializing")
            self._initialize_storage()
            return {}
        except OSError as e:
            raise ReminderStoreError(f"Cannot read reminders: {e}") from e

        entries = data.get(self.NAMESPACE_KEY) if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            logger.error("Reminder storage has no valid namespace mapping, resetting")
            self._backup_and_reset()
            if strict:
                raise ReminderStoreError("Reminder storage had no valid namespace mapping and has been reset")
            return {}
        return entries

    def _write_blob(self, entries: Dict[str, dict]):
        """
        Save the raw id -> dict mapping.

        Raises:
            ReminderStoreError: If storage cannot be written
        """
        try:
            data = {self.NAMESPACE_KEY: entries}

            # Write atomically (write to temp, then rename)
            temp_path = self.storage_path.with_suffix('.tmp')
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            temp_path.replace(self.storage_path)

            logger.debug(f"Saved {len(entries)} reminders")
        except (OSError, TypeError, ValueError) as e:
            raise ReminderStoreError(f"Cannot save reminders: {e}") from e

    def _backup_and_reset(self):
        """
        Backup corrupted file and create fresh storage.

        Durability of future writes wins over salvaging the corrupt blob.
        """
        backup_path = self.storage_path.with_suffix('.json.bak')

        try:
            if self.storage_path.exists():
                self.storage_path.replace(backup_path)
                logger.warning(f"Backed up corrupted storage to: {backup_path}")
        except OSError as e:
            logger.error(f"Failed to back up corrupted storage: {e}", exc_info=True)

        self._initialize_storage()
        logger.info("Created fresh reminder storage")

    @staticmethod
    def _decode(key: str, raw: dict) -> Optional[ReminderRecord]:
        """Parse one stored entry, or None if it is malformed"""
        try:
            return ReminderRecord.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping malformed reminder {key!r}: {e}")
            return None

    def _mutate(self, action: str, change: Callable[[Dict[str, dict]], object]) -> OpResult:
        """Run one locked read-modify-write; change() edits entries in place"""
        with self._lock:
            try:
                entries = self._read_blob()
                outcome = change(entries)
                self._write_blob(entries)
            except ReminderStoreError as e:
                logger.error(f"Reminder store {action} failed: {e}")
                return OpResult.fail(ErrorKind.PERSISTENCE, str(e))
        return OpResult.ok(outcome)

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def put(self, record: ReminderRecord) -> OpResult:
        """
        Insert or overwrite a reminder.

        Args:
            record: Record to persist (keyed by record.id)

        Returns:
            OpResult; failure kind is PERSISTENCE
        """
        def change(entries):
            entries[str(record.id)] = record.to_dict()

        result = self._mutate("put", change)
        if result:
            logger.debug(f"Reminder saved: id={record.id}")
        return result

    def replace_if_present(self, record: ReminderRecord) -> OpResult:
        """
        Overwrite a reminder only if its id is still stored.

        Check and write happen under the same lock, so a reminder canceled
        concurrently is never brought back.

        Returns:
            OpResult whose data is True if written, False if the id was gone
        """
        def change(entries):
            key = str(record.id)
            if key not in entries:
                return False
            entries[key] = record.to_dict()
            return True

        return self._mutate("replace", change)

    def remove(self, reminder_id: int) -> OpResult:
        """
        Remove a reminder. Removing an unknown id is a no-op.

        Returns:
            OpResult whose data is True if something was removed
        """
        def change(entries):
            return entries.pop(str(reminder_id), None) is not None

        result = self._mutate("remove", change)
        if result and result.data:
            logger.debug(f"Reminder removed: id={reminder_id}")
        return result

    def clear(self) -> OpResult:
        """Drop every stored reminder"""
        with self._lock:
            try:
                self._write_blob({})
            except ReminderStoreError as e:
                logger.error(f"Reminder store clear failed: {e}")
                return OpResult.fail(ErrorKind.PERSISTENCE, str(e))
        logger.info("Cleared all stored reminders")
        return OpResult.ok()

    def get_all(self) -> Dict[int, ReminderRecord]:
        """
        Get every valid stored reminder.

        Returns:
            Mapping of id -> record; empty if storage is unreadable
        """
        with self._lock:
            try:
                entries = self._read_blob()
            except ReminderStoreError as e:
                logger.error(f"getAll failed, treating store as empty: {e}")
                return {}

        records = {}
        for key, raw in entries.items():
            record = self._decode(key, raw)
            if record is not None:
                records[record.id] = record
        return records

    def lookup(self, reminder_id: int) -> OpResult:
        """
        Get a specific reminder, telling absence apart from unreadable storage.

        A corrupt blob counts as unreadable even though it is reset, since
        what it held for this id is unknown.

        Returns:
            OpResult whose data is the record, or None if the id is not stored;
            failure kind PERSISTENCE if storage could not be read,
            MALFORMED_RECORD if the stored entry cannot be parsed
        """
        with self._lock:
            try:
                entries = self._read_blob(strict=True)
            except ReminderStoreError as e:
                logger.error(f"lookup({reminder_id}) failed: {e}")
                return OpResult.fail(ErrorKind.PERSISTENCE, str(e))

        key = str(reminder_id)
        if key not in entries:
            return OpResult.ok(None)

        record = self._decode(key, entries[key])
        if record is None:
            return OpResult.fail(ErrorKind.MALFORMED_RECORD, f"Stored reminder {key} is malformed")
        return OpResult.ok(record)

    def get(self, reminder_id: int) -> Optional[ReminderRecord]:
        """
        Get a specific reminder by ID.

        Returns:
            ReminderRecord if found and well-formed, None otherwise
        """
        found = self.lookup(reminder_id)
        return found.data if found else None

    def remove_if_unchanged(self, record: ReminderRecord) -> OpResult:
        """
        Remove a reminder only if the stored copy still equals record.

        Used after a lookup or snapshot, so a reminder re-scheduled under the
        same id in the meantime is left alone.

        Returns:
            OpResult whose data is True if removed, False if gone or replaced
        """
        def change(entries):
            key = str(record.id)
            if key not in entries or self._decode(key, entries[key]) != record:
                return False
            del entries[key]
            return True

        result = self._mutate("remove", change)
        if result and result.data:
            logger.debug(f"Reminder removed: id={record.id}")
        return result

    def count(self) -> int:
        """Size of the stored mapping; entries are not decoded"""
        with self._lock:
            try:
                return len(self._read_blob())
            except ReminderStoreError as e:
                logger.error(f"count failed, treating store as empty: {e}")
                return 0
