"""
CHIME - Native Reminder Engine

Persistence-first reminder scheduling that survives process death and
device restarts, plus the thin host glue around it.
"""

__version__ = "0.1.0"
