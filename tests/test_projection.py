"""
Unit tests for the projection engine.

CSE 101 in the fixture: total 45 hrs, required for 75% = 34,
OD allowed 7, min required with OD 23.
Monday block_m1 = 2 hrs, Monday block_m3 = 1 hr, Friday block_f1 = 1 hr.
"""

import unittest

from classbuddy.config import load_semester_config
from classbuddy.ledger import AttendanceLedger
from classbuddy.projection import CRITICAL, DANGER, NEUTRAL, SAFE, WARNING, ProjectionEngine, status_band

from semester_fixture import make_config, weekly


class ProjectionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.config = make_config()
        self.ledger = AttendanceLedger(self.config.timetable, self.config.calendar)
        self.engine = ProjectionEngine(self.config, self.ledger)

    def mark_many(self, keys: list[str], block_id: str, status: str) -> None:
        for k in keys:
            self.ledger.mark(k, block_id, status)


class TestAggregate(ProjectionTestCase):
    def test_hours_weighted_by_block_duration(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")
        self.ledger.mark("2026-01-05", "block_m3", "absent")
        self.ledger.mark("2026-01-09", "block_f1", "present")

        tally = self.engine.aggregate("CSE 101")
        self.assertEqual((tally.attended, tally.missed), (3, 1))

    def test_unmarked_blocks_count_nothing(self) -> None:
        tally = self.engine.aggregate("CSE 101")
        self.assertEqual((tally.attended, tally.missed), (0, 0))

    def test_marks_before_course_start_ignored(self) -> None:
        # MAT 201 starts on 2026-01-14
        self.ledger.mark("2026-01-07", "block_w1", "absent")
        self.ledger.mark("2026-01-12", "block_m4", "absent")
        self.ledger.mark("2026-01-14", "block_w1", "present")

        tally = self.engine.aggregate("MAT 201")
        self.assertEqual((tally.attended, tally.missed), (2, 0))

    def test_unknown_course_is_none(self) -> None:
        self.assertIsNone(self.engine.aggregate("XYZ 999"))
        self.assertIsNone(self.engine.course_stats("XYZ 999"))


class TestCourseStats(ProjectionTestCase):
    def test_half_attendance(self) -> None:
        mondays = weekly("2026-01-05", 10)
        self.mark_many(mondays, "block_m1", "present")  # 20 hrs
        self.mark_many(mondays, "block_m3", "absent")  # 10 hrs
        self.mark_many(weekly("2026-01-09", 10), "block_f1", "absent")  # 10 hrs

        s = self.engine.course_stats("CSE 101")
        self.assertEqual((s.attended, s.missed, s.classes_held), (20, 20, 40))
        self.assertEqual(s.required_for_75, 34)
        self.assertEqual(s.must_attend_for_75, 14)
        self.assertEqual(s.current_percentage, 50.0)
        self.assertEqual(s.max_bunks_allowed, 11)
        self.assertEqual(s.can_bunk_without_od, 0)
        self.assertEqual(s.max_bunks_with_od, 22)
        self.assertEqual(s.can_bunk_with_od, 2)
        self.assertEqual(s.remaining, 5)
        self.assertAlmostEqual(s.projected_best, 100 * 25 / 45)
        self.assertAlmostEqual(s.projected_worst, 100 * 20 / 45)
        self.assertEqual(s.safety_margin, -10)
        self.assertEqual(s.status, CRITICAL)

    def test_perfect_attendance(self) -> None:
        self.mark_many(weekly("2026-01-05", 15), "block_m1", "present")  # 30 hrs

        s = self.engine.course_stats("CSE 101")
        self.assertEqual(s.can_bunk_without_od, 11)
        self.assertEqual(s.must_attend_for_75, 4)
        self.assertEqual(s.current_percentage, 100.0)
        self.assertEqual(s.safety_margin, 30 - 23)
        self.assertEqual(s.status, SAFE)

    def test_no_data_degrades_to_zero(self) -> None:
        s = self.engine.course_stats("CSE 101")
        self.assertEqual(s.current_percentage, 0)
        self.assertEqual(s.status, SAFE)
        self.assertEqual(s.projected_worst, 0)
        self.assertEqual(s.projected_best, 100.0)
        self.assertEqual(s.can_bunk_without_od, 11)

    def test_default_od_allowance_from_total(self) -> None:
        # MAT 201 has no explicit OD numbers: 15% of 30 = 4.5 -> 5, min = ceil(0.6 * 25) = 15
        s = self.engine.course_stats("MAT 201")
        self.assertEqual((s.od_allowed, s.min_required), (5, 15))
        self.assertEqual(s.max_bunks_with_od, 15)

    def test_all_course_stats_sorted(self) -> None:
        self.assertEqual([s.course for s in self.engine.all_course_stats()], ["CSE 101", "MAT 201"])


class TestStatusBand(unittest.TestCase):
    def test_band_edges(self) -> None:
        self.assertEqual(status_band(85.0, 10), SAFE)
        self.assertEqual(status_band(84.99, 10), WARNING)
        self.assertEqual(status_band(75.0, 10), WARNING)
        self.assertEqual(status_band(74.99, 10), DANGER)
        self.assertEqual(status_band(65.0, 10), DANGER)
        self.assertEqual(status_band(64.99, 10), CRITICAL)
        self.assertEqual(status_band(0.0, 0), SAFE)


class TestWorstCourseStatus(ProjectionTestCase):
    def test_neutral_without_data(self) -> None:
        st = self.engine.worst_course_status()
        self.assertEqual(st.status, NEUTRAL)
        self.assertIsNone(st.course)

    def test_course_in_danger_reported_first(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")  # CSE 101: 100%
        self.ledger.mark("2026-01-14", "block_w1", "absent")  # MAT 201: 0%

        st = self.engine.worst_course_status()
        self.assertEqual(st.course, "MAT 201")
        self.assertEqual(st.status, CRITICAL)
        self.assertEqual(st.must_attend, 23)
        self.assertIn("Attend 23 classes", st.message)

    def test_most_constrained_course_when_all_fine(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")
        self.ledger.mark("2026-01-05", "block_m3", "present")
        self.ledger.mark("2026-01-14", "block_w1", "present")
        # CSE 101 can bunk 11, MAT 201 can bunk 30 - 23 = 7
        st = self.engine.worst_course_status()
        self.assertEqual(st.course, "MAT 201")
        self.assertEqual(st.can_bunk, 7)
        self.assertEqual(st.message, "MAT 201: Can bunk 7 classes")


class TestDateViews(ProjectionTestCase):
    def test_date_summary_in_hours(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")
        self.ledger.mark("2026-01-05", "block_m3", "absent")
        summary = self.engine.date_summary("2026-01-05")
        self.assertEqual((summary.present, summary.absent), (2, 1))
        self.assertEqual(self.engine.date_summary("2026-01-06").present, 0)

    def test_overall_percentage(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")
        self.ledger.mark("2026-01-05", "block_m3", "absent")
        self.ledger.mark("2026-01-14", "block_w1", "absent")
        self.assertAlmostEqual(self.engine.overall_percentage(), 100 * 2 / 5)


class TestScheduledHours(unittest.TestCase):
    def test_late_start_course_matches_configured_total(self) -> None:
        # FLC 120 starts 2026-01-30: 12 Wednesdays + 10 Fridays, 2 hrs each
        config = load_semester_config()
        engine = ProjectionEngine(config, AttendanceLedger())
        self.assertEqual(engine.scheduled_hours("FLC 120"), 44)
        self.assertEqual(config.courses["FLC 120"].total_semester_hours, 44)


if __name__ == "__main__":
    unittest.main()
