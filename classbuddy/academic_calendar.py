"""
Academic calendar.

Classifies every calendar date into exactly one teaching status.

Precedence (first match wins):
    before semester -> after semester -> holiday -> weekend -> exam blackout -> teaching day

A weekend date inside an exam period is therefore reported as 'weekend'.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Iterator, Mapping, Optional

from classbuddy.errors import ConfigError
from classbuddy.model import (
    AFTER_SEMESTER,
    BEFORE_SEMESTER,
    EXAM_BLACKOUT,
    HOLIDAY,
    TEACHING_DAY,
    WEEKEND,
    CalendarFact,
    ExamPeriod,
    Holiday,
    as_date,
)


class AcademicCalendar:
    def __init__(
        self,
        semester_start: date,
        semester_end: date,
        holidays: Iterable[Holiday] = (),
        exam_periods: Iterable[ExamPeriod] = (),
        course_start_overrides: Optional[Mapping[str, date]] = None,
    ):
        if semester_end < semester_start:
            raise ConfigError(f"Semester ends ({semester_end}) before it starts ({semester_start})")

        self.semester_start = semester_start
        self.semester_end = semester_end

        self._holidays: dict[date, Holiday] = {}
        for h in holidays:
            self._holidays[h.day] = h

        periods = list(exam_periods)
        for p in periods:
            if p.end < p.start:
                raise ConfigError(f"Exam period {p.name!r} ends before it starts")
        self._exam_periods: tuple[ExamPeriod, ...] = tuple(sorted(periods, key=lambda p: p.start))

        self._course_starts: dict[str, date] = dict(course_start_overrides or {})

    @property
    def holidays(self) -> list[Holiday]:
        return [self._holidays[d] for d in sorted(self._holidays)]

    @property
    def exam_periods(self) -> tuple[ExamPeriod, ...]:
        return self._exam_periods

    @property
    def course_start_overrides(self) -> dict[str, date]:
        return dict(self._course_starts)

    def holiday_on(self, day: date | str) -> Optional[Holiday]:
        return self._holidays.get(as_date(day))

    def exam_period_on(self, day: date | str) -> Optional[ExamPeriod]:
        d = as_date(day)
        for p in self._exam_periods:
            if p.contains(d):
                return p
        return None

    def classify(self, day: date | str) -> CalendarFact:
        """
        Return the CalendarFact for a date (date object or 'YYYY-MM-DD').
        Raises InvalidDateError for malformed strings.
        """
        d = as_date(day)

        if d < self.semester_start:
            return CalendarFact(BEFORE_SEMESTER)
        if d > self.semester_end:
            return CalendarFact(AFTER_SEMESTER)

        holiday = self._holidays.get(d)
        if holiday:
            return CalendarFact(HOLIDAY, name=holiday.name)

        if d.weekday() == 5:
            return CalendarFact(WEEKEND, day="Saturday")
        if d.weekday() == 6:
            return CalendarFact(WEEKEND, day="Sunday")

        period = self.exam_period_on(d)
        if period:
            return CalendarFact(EXAM_BLACKOUT, name=period.name)

        return CalendarFact(TEACHING_DAY)

    def is_teaching_day(self, day: date | str) -> bool:
        return self.classify(day).has_classes

    def no_class_message(self, day: date | str) -> Optional[str]:
        return self.classify(day).message(self.semester_start, self.semester_end)

    def course_start_date(self, course: str) -> date:
        """Late registrations start later than the semester."""
        return self._course_starts.get(course, self.semester_start)

    def teaching_days(self, start: date | str | None = None, end: date | str | None = None) -> Iterator[date]:
        """
        Yield teaching days in [start, end], clipped to the semester.
        """
        lo = max(as_date(start), self.semester_start) if start is not None else self.semester_start
        hi = min(as_date(end), self.semester_end) if end is not None else self.semester_end

        d = lo
        while d <= hi:
            if self.is_teaching_day(d):
                yield d
            d += timedelta(days=1)
