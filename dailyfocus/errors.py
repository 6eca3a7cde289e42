"""Exception types for DailyFocus.

None of these escape the public operations: the store, the importer and the
board catch them, log, and fall back to a usable state.
"""

from __future__ import annotations


class DailyFocusError(Exception):
    """Base class for all DailyFocus errors."""


class StorageReadError(DailyFocusError):
    """A persisted blob is unreadable or corrupt."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"cannot read {key!r}: {reason}")
        self.key = key
        self.reason = reason


class StorageWriteError(DailyFocusError):
    """A persisted blob could not be written."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"cannot write {key!r}: {reason}")
        self.key = key
        self.reason = reason


class ImportParseError(DailyFocusError):
    """An import payload is malformed."""
