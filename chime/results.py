"""
CHIME Operation Results

Every place the engine catches and logs a failure returns one of these
instead of raising, so callers see what degraded and why.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Failure domains of the reminder engine"""
    PERSISTENCE = "persistence"
    ARMING = "arming"
    MALFORMED_RECORD = "malformed_record"
    DISPLAY = "display"
    INVALID_ARGUMENT = "invalid_argument"


@dataclass
class OpResult:
    """Result of a store, driver or scheduler operation"""
    success: bool
    data: Any = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Any = None) -> 'OpResult':
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> 'OpResult':
        return cls(success=False, error=error, kind=kind)

    def __bool__(self) -> bool:
        return self.success
