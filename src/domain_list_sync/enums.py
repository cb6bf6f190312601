"""
Enumeration types for the domain list synchronization engine.
"""

from enum import Enum


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]


_LEVEL_RANKS = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


class AttemptOutcome(Enum):
    """Tagged result of a single request attempt."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


class SourceKind(Enum):
    """Available strategies for acquiring the remote list."""

    ISSUES = "issues"
    TEXT = "text"
    ISSUE_TABLE = "issue_table"


class ReloadReason(Enum):
    """Why the refresh policy did or did not ask for a full reload."""

    FORCED = "forced"
    EMPTY = "empty"
    STALE = "stale"
    COUNT_CHANGED = "count_changed"
    UP_TO_DATE = "up_to_date"
    COUNT_UNKNOWN = "count_unknown"
