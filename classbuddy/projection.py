"""
Attendance projections ("can I bunk?").

For each course the engine sums marked hours from the ledger and derives:

    held            = attended + missed
    percentage      = 100 * attended / held
    required_for_75 = ceil(0.75 * total)
    can bunk        = (total - required_for_75) - missed        (>= 0)
    must attend     = required_for_75 - attended                (>= 0)
    with OD/ML      = (total - min_required) - missed           (>= 0)
    projections     = best: attend everything left, worst: attend nothing more

All values are computed on demand from the ledger; nothing is cached.
Percentages are NOT rounded here (display rounding is the UI's job).
"""

from __future__ import annotations

import math
from typing import Optional

from classbuddy.config import SemesterConfig
from classbuddy.ledger import AttendanceLedger
from classbuddy.model import (
    ABSENT,
    PRESENT,
    BunkStatus,
    CourseTally,
    DateSummary,
    DetailedCourseStats,
    parse_date_key,
)

SAFE = "safe"
WARNING = "warning"
DANGER = "danger"
CRITICAL = "critical"
NEUTRAL = "neutral"

SAFE_FROM = 85.0
WARNING_FROM = 75.0
DANGER_FROM = 65.0


def status_band(percentage: float, held: int) -> str:
    """
    >= 85 safe, [75, 85) warning, [65, 75) danger, < 65 critical.
    No classes held yet counts as safe.
    """
    if held <= 0:
        return SAFE
    if percentage >= SAFE_FROM:
        return SAFE
    if percentage >= WARNING_FROM:
        return WARNING
    if percentage >= DANGER_FROM:
        return DANGER
    return CRITICAL


def _ratio(num: float, den: float) -> float:
    return 100.0 * num / den if den > 0 else 0.0


def _plural(n: int) -> str:
    return "class" if n == 1 else "classes"


class ProjectionEngine:
    def __init__(self, config: SemesterConfig, ledger: AttendanceLedger):
        self.config = config
        self.ledger = ledger

    def _ceil_target(self, hours: int) -> int:
        # multiply first: 45 * 75 / 100 is exact, 45 * 0.75 might not be for other targets
        return int(math.ceil(hours * self.config.target_percentage / 100.0))

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def aggregate(self, course: str) -> Optional[CourseTally]:
        """
        Sum marked hours for one course. Unknown course -> None.
        Marks before the course's effective start date are ignored.
        """
        if self.config.course(course) is None:
            return None

        start = self.config.calendar.course_start_date(course)
        attended = 0
        missed = 0

        for key, record in self.ledger.items():
            day = parse_date_key(key)
            if day < start:
                continue
            for block in self.config.timetable.blocks_for_date(day):
                if block.course_code != course:
                    continue
                status = record.get(block.block_id)
                if status == PRESENT:
                    attended += block.duration_hours
                elif status == ABSENT:
                    missed += block.duration_hours

        return CourseTally(attended=attended, missed=missed)

    # ------------------------------------------------------------------
    # Per-course statistics
    # ------------------------------------------------------------------

    def course_stats(self, course: str) -> Optional[DetailedCourseStats]:
        meta = self.config.course(course)
        tally = self.aggregate(course)
        if meta is None or tally is None:
            return None

        attended = tally.attended
        missed = tally.missed
        held = tally.held
        total = meta.total_semester_hours

        required = self._ceil_target(total)
        max_bunks = total - required
        max_bunks_with_od = total - meta.min_required
        remaining = total - held
        percentage = _ratio(attended, held)

        return DetailedCourseStats(
            course=course,
            course_title=self.config.course_title(course),
            attended=attended,
            missed=missed,
            classes_held=held,
            semester_total=total,
            remaining=remaining,
            current_percentage=percentage,
            required_for_75=required,
            max_bunks_allowed=max_bunks,
            can_bunk_without_od=max(0, max_bunks - missed),
            must_attend_for_75=max(0, required - attended),
            od_allowed=meta.od_allowance,
            min_required=meta.min_required,
            max_bunks_with_od=max_bunks_with_od,
            can_bunk_with_od=max(0, max_bunks_with_od - missed),
            projected_best=_ratio(attended + remaining, total),
            projected_worst=_ratio(attended, total),
            safety_margin=attended - self._ceil_target(held),
            status=status_band(percentage, held),
            start_date=self.config.calendar.course_start_date(course),
            rooms=meta.rooms,
        )

    def all_course_stats(self) -> list[DetailedCourseStats]:
        out: list[DetailedCourseStats] = []
        for code in sorted(self.config.courses):
            stats = self.course_stats(code)
            if stats is not None:
                out.append(stats)
        return out

    # ------------------------------------------------------------------
    # Overall views
    # ------------------------------------------------------------------

    def worst_course_status(self) -> BunkStatus:
        """
        The one line of advice for the dashboard.

        - no data at all -> neutral
        - any course in danger/critical -> the lowest percentage one, with
          the hours it must attend
        - otherwise -> the course with the fewest remaining bunks
        """
        with_data = [s for s in self.all_course_stats() if s.classes_held > 0]
        if not with_data:
            return BunkStatus(status=NEUTRAL, message="Start marking attendance to see bunk status")

        in_trouble = [s for s in with_data if s.status in (DANGER, CRITICAL)]
        if in_trouble:
            worst = in_trouble[0]
            for s in in_trouble[1:]:
                if s.current_percentage < worst.current_percentage:
                    worst = s
            n = worst.must_attend_for_75
            return BunkStatus(
                status=worst.status,
                message=f"{worst.course}: Attend {n} {_plural(n)} to reach 75%",
                course=worst.course,
                current_percentage=worst.current_percentage,
                must_attend=n,
            )

        tightest = with_data[0]
        for s in with_data[1:]:
            if s.can_bunk_without_od < tightest.can_bunk_without_od:
                tightest = s
        n = tightest.can_bunk_without_od
        if n > 0:
            message = f"{tightest.course}: Can bunk {n} {_plural(n)}"
        else:
            message = f"{tightest.course}: Attend next class to stay above 75%"
        return BunkStatus(
            status=tightest.status,
            message=message,
            course=tightest.course,
            current_percentage=tightest.current_percentage,
            can_bunk=n,
        )

    def overall_percentage(self) -> float:
        attended = 0
        held = 0
        for code in self.config.courses:
            tally = self.aggregate(code)
            if tally is not None:
                attended += tally.attended
                held += tally.held
        return _ratio(attended, held)

    def date_summary(self, key: str) -> DateSummary:
        """Hours marked present/absent on one date."""
        day = parse_date_key(key)
        record = self.ledger.records_for_date(key)
        present = 0
        absent = 0
        for block in self.config.timetable.blocks_for_date(day):
            status = record.get(block.block_id)
            if status == PRESENT:
                present += block.duration_hours
            elif status == ABSENT:
                absent += block.duration_hours
        return DateSummary(present=present, absent=absent)

    def scheduled_hours(self, course: str) -> int:
        """
        Hours the timetable actually schedules for a course this semester:
        every teaching day from the course start date to the semester end.
        Used to cross-check the configured total_semester_hours.
        """
        start = self.config.calendar.course_start_date(course)
        timetable = self.config.timetable
        hours = 0
        for day in self.config.calendar.teaching_days(start=start):
            for block in timetable.blocks_for_date(day):
                if block.course_code == course:
                    hours += block.duration_hours
        return hours
