"""
Central data model definitions used across the project.

This module defines the canonical structure of timetable, calendar and
statistics objects so that:
- all modules share the same field names
- the static semester data stays immutable (frozen dataclasses)
- exporters and the UI consume the same result types as the engine produces
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from classbuddy.errors import ConfigError, InvalidDateError


WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

PRESENT = "present"
ABSENT = "absent"
STATUSES = (PRESENT, ABSENT)

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# Small parsing helpers
# ---------------------------------------------------------------------------


def parse_date_key(text: str) -> date:
    """
    Convert 'YYYY-MM-DD' to a date.

    Only the strict ISO form is accepted: '2026-1-5', '20260105' or
    '2026-02-30' raise InvalidDateError instead of being coerced.
    """
    if not isinstance(text, str) or not _DATE_KEY_RE.match(text.strip()):
        raise InvalidDateError(f"Invalid date (expected YYYY-MM-DD): {text!r}")
    try:
        return datetime.strptime(text.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidDateError(f"Invalid date value: {text!r}") from None


def date_key(day: date) -> str:
    return day.strftime("%Y-%m-%d")


def as_date(value: date | str) -> date:
    """Accept either a date or a date key."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date_key(value)


def parse_weekday(name: str) -> str:
    """
    Normalize 'monday', 'Mon', 'MON' ... to 'Monday'.
    Saturday/Sunday are not teaching weekdays and are rejected.
    """
    raw = str(name or "").strip().lower()
    for wd in WEEKDAYS:
        if raw in (wd.lower(), wd[:3].lower()):
            return wd
    raise ConfigError(f"Unknown weekday: {name!r} (expected one of {', '.join(WEEKDAYS)})")


def weekday_of(day: date) -> Optional[str]:
    """Return the teaching weekday name of a date, None on weekends."""
    idx = day.weekday()
    return WEEKDAYS[idx] if idx < 5 else None


def validate_status(status: str) -> str:
    s = str(status or "").strip().lower()
    if s not in STATUSES:
        raise ValueError(f"Status must be 'present' or 'absent', got {status!r}")
    return s


def default_od_allowance(total_hours: int) -> int:
    # 15% of the semester, half rounded up (never banker's rounding)
    return int(math.floor(0.15 * total_hours + 0.5))


def default_min_required(total_hours: int, od_allowance: int) -> int:
    # 60% of what is left after using the full OD/ML allowance
    return int(math.ceil(0.60 * (total_hours - od_allowance)))


# ---------------------------------------------------------------------------
# Static timetable data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeeklySlot:
    """
    One fixed one-hour slot of the weekly timetable (always on the hour).
    """

    slot_id: str
    weekday: str
    start_hour: int
    course_code: str
    room: str
    is_lab: bool = False
    is_oe: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.start_hour, int) or not (0 <= self.start_hour <= 23):
            raise ConfigError(f"Invalid start hour for slot {self.slot_id!r}: {self.start_hour!r}")
        if self.weekday not in WEEKDAYS:
            raise ConfigError(f"Unknown weekday for slot {self.slot_id!r}: {self.weekday!r}")


@dataclass(frozen=True)
class ClassBlock:
    """
    Consecutive same-course slots merged into one attendance unit.

    end_hour is the start hour of the LAST slot; the class really ends
    at end_hour:50.
    """

    block_id: str
    course_code: str
    room: str
    start_hour: int
    end_hour: int
    duration_hours: int
    slot_ids: tuple[str, ...]
    is_lab: bool = False
    is_oe: bool = False

    @property
    def start_time(self) -> str:
        return f"{self.start_hour:02d}:00"

    @property
    def end_time(self) -> str:
        return f"{self.end_hour:02d}:50"


@dataclass(frozen=True)
class CourseMetadata:
    course_code: str
    total_semester_hours: int
    od_allowance: int
    min_required: int
    rooms: tuple[str, ...] = ()
    title: str = ""
    faculty: str = ""

    @property
    def hours_after_od(self) -> int:
        return self.total_semester_hours - self.od_allowance


# ---------------------------------------------------------------------------
# Calendar facts
# ---------------------------------------------------------------------------

BEFORE_SEMESTER = "before_semester"
AFTER_SEMESTER = "after_semester"
WEEKEND = "weekend"
HOLIDAY = "holiday"
EXAM_BLACKOUT = "exam_blackout"
TEACHING_DAY = "teaching_day"


@dataclass(frozen=True)
class Holiday:
    day: date
    name: str


@dataclass(frozen=True)
class ExamPeriod:
    start: date
    end: date
    name: str

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class CalendarFact:
    """
    Teaching status of one calendar date.

    name is set for holidays and exam blackouts, day ('Saturday'/'Sunday')
    for weekends.
    """

    kind: str
    name: Optional[str] = None
    day: Optional[str] = None

    @property
    def has_classes(self) -> bool:
        return self.kind == TEACHING_DAY

    def message(self, semester_start: Optional[date] = None, semester_end: Optional[date] = None) -> Optional[str]:
        if self.kind == HOLIDAY:
            return f"Holiday: {self.name}"
        if self.kind == WEEKEND:
            return f"{self.day} - No classes"
        if self.kind == EXAM_BLACKOUT:
            return f"Exams: {self.name} - No classes"
        if self.kind == BEFORE_SEMESTER:
            if semester_start:
                return f"Date is before semester start ({semester_start:%b} {semester_start.day})"
            return "Date is before semester start"
        if self.kind == AFTER_SEMESTER:
            if semester_end:
                return f"Date is after semester end ({semester_end:%b} {semester_end.day})"
            return "Date is after semester end"
        return None


# ---------------------------------------------------------------------------
# Attendance + statistics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttendanceRecord:
    """One flat (date, block, status) row, the persistence/export format."""

    date_key: str
    block_id: str
    status: str


@dataclass(frozen=True)
class CourseTally:
    attended: int = 0
    missed: int = 0

    @property
    def held(self) -> int:
        return self.attended + self.missed


@dataclass(frozen=True)
class DateSummary:
    """Hours marked present/absent on one date."""

    present: int = 0
    absent: int = 0


@dataclass(frozen=True)
class DetailedCourseStats:
    course: str
    course_title: str
    attended: int
    missed: int
    classes_held: int
    semester_total: int
    remaining: int
    current_percentage: float
    required_for_75: int
    max_bunks_allowed: int
    can_bunk_without_od: int
    must_attend_for_75: int
    od_allowed: int
    min_required: int
    max_bunks_with_od: int
    can_bunk_with_od: int
    projected_best: float
    projected_worst: float
    safety_margin: int
    status: str
    start_date: date
    rooms: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BunkStatus:
    """
    Overall bunk advice across all courses (the most constrained course).
    """

    status: str
    message: str
    course: Optional[str] = None
    current_percentage: float = 0.0
    can_bunk: int = 0
    must_attend: int = 0
