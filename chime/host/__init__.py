"""
CHIME Host - Boundary Glue

Entry points the host application calls into: method dispatch from the UI
layer, restart signals, and runtime wiring.
"""

from .boot import BOOT_ACTIONS, BootHandler
from .dispatcher import MethodDispatcher, MethodResult
from .runtime import ReminderRuntime, create_runtime

__all__ = [
    'BOOT_ACTIONS',
    'BootHandler',
    'MethodDispatcher',
    'MethodResult',
    'ReminderRuntime',
    'create_runtime',
]
