"""
Error hierarchy.

Three kinds of failure exist in ClassBuddy:

- configuration errors (bad dates, unknown weekdays, broken semester file):
  raised immediately, the configuration has to be fixed
- rejected attendance marks (a block that does not exist on that weekday,
  a course that has not started yet)
- sync errors from the remote store: caught by the sync layer and reported
  as non-fatal warnings

Lookup misses (unknown course, no entry for a date) are NOT errors, they
resolve to None / {} / 0.
"""

from __future__ import annotations


class ClassBuddyError(Exception):
    """Base exception for all ClassBuddy errors."""


class ConfigError(ClassBuddyError, ValueError):
    """Broken static configuration (semester file, timetable, dates)."""


class InvalidDateError(ConfigError):
    """A date string that is not a valid YYYY-MM-DD calendar date."""


class UnknownBlockError(ClassBuddyError, ValueError):
    """A block id that cannot exist on the weekday of the given date."""


class CourseNotStartedError(ClassBuddyError, ValueError):
    """A mark dated before the course's effective start date."""


class SyncError(ClassBuddyError):
    """The remote attendance store could not be reached or refused a request."""


class RecordImportError(ClassBuddyError):
    """A record file that cannot be opened or read."""
