"""
Unit tests for the attendance ledger.

Ledger contract:
- mark is an upsert (last write wins, idempotent)
- clear removes one entry and is a no-op when absent
- mark + clear restores the previous state exactly
- with a timetable attached, impossible blocks are rejected
"""

import random
import unittest

from classbuddy.errors import CourseNotStartedError, InvalidDateError, UnknownBlockError
from classbuddy.ledger import AttendanceLedger
from classbuddy.model import AttendanceRecord

from semester_fixture import make_config


class TestLedgerBasics(unittest.TestCase):
    def setUp(self) -> None:
        self.ledger = AttendanceLedger()

    def test_mark_then_clear_restores_state(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")
        before = self.ledger.as_dict()

        self.ledger.mark("2026-01-07", "block_w1", "absent")
        self.ledger.clear("2026-01-07", "block_w1")
        self.assertEqual(self.ledger.as_dict(), before)
        self.assertEqual(self.ledger.marked_dates(), {"2026-01-05"})

    def test_mark_is_idempotent_and_overwrites(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")
        self.ledger.mark("2026-01-05", "block_m1", "present")
        self.assertEqual(len(self.ledger), 1)

        self.ledger.mark("2026-01-05", "block_m1", "absent")
        self.assertEqual(self.ledger.records_for_date("2026-01-05"), {"block_m1": "absent"})

    def test_clear_missing_is_noop(self) -> None:
        self.ledger.clear("2026-01-05", "block_m1")
        self.assertEqual(self.ledger.as_dict(), {})

    def test_records_for_unknown_date_is_empty(self) -> None:
        self.assertEqual(self.ledger.records_for_date("2026-02-02"), {})
        self.assertIsNone(self.ledger.status_of("2026-02-02", "block_m1"))

    def test_records_for_date_is_a_copy(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")
        rec = self.ledger.records_for_date("2026-01-05")
        rec["block_m1"] = "absent"
        self.assertEqual(self.ledger.status_of("2026-01-05", "block_m1"), "present")

    def test_reset_all(self) -> None:
        self.ledger.mark("2026-01-05", "block_m1", "present")
        self.ledger.mark("2026-01-06", "block_t1", "absent")
        self.ledger.reset_all()
        self.assertEqual(len(self.ledger), 0)
        self.assertEqual(self.ledger.marked_dates(), set())

    def test_invalid_input_rejected(self) -> None:
        with self.assertRaises(InvalidDateError):
            self.ledger.mark("2026-02-30", "block_m1", "present")
        with self.assertRaises(ValueError):
            self.ledger.mark("2026-01-05", "block_m1", "late")
        self.assertEqual(len(self.ledger), 0)


class TestLedgerValidation(unittest.TestCase):
    def setUp(self) -> None:
        self.config = make_config()

    def test_unknown_block_for_weekday_rejected(self) -> None:
        ledger = AttendanceLedger(self.config.timetable, self.config.calendar)
        ledger.mark("2026-01-05", "block_m1", "present")
        with self.assertRaises(UnknownBlockError):
            # Wednesday block on a Monday
            ledger.mark("2026-01-05", "block_w1", "present")
        with self.assertRaises(UnknownBlockError):
            ledger.mark("2026-01-10", "block_m1", "present")

    def test_course_start_is_optional_contract(self) -> None:
        lenient = AttendanceLedger(self.config.timetable, self.config.calendar)
        lenient.mark("2026-01-07", "block_w1", "present")

        strict = AttendanceLedger(self.config.timetable, self.config.calendar, enforce_course_start=True)
        with self.assertRaises(CourseNotStartedError):
            strict.mark("2026-01-07", "block_w1", "present")
        strict.mark("2026-01-14", "block_w1", "present")
        self.assertEqual(strict.status_of("2026-01-14", "block_w1"), "present")


class TestLedgerRecords(unittest.TestCase):
    def test_record_round_trip_is_order_independent(self) -> None:
        ledger = AttendanceLedger()
        ledger.mark("2026-01-05", "block_m1", "present")
        ledger.mark("2026-01-05", "block_m3", "absent")
        ledger.mark("2026-01-07", "block_w1", "present")
        ledger.mark("2026-01-09", "block_f1", "absent")

        records = ledger.to_records()
        random.Random(3).shuffle(records)
        rebuilt = AttendanceLedger.from_records(records)
        self.assertEqual(rebuilt, ledger)

    def test_load_mapping_skips_bad_entries(self) -> None:
        config = make_config()
        ledger = AttendanceLedger(config.timetable, config.calendar)
        applied = ledger.load_mapping(
            {
                "2026-01-05": {"block_m1": "present", "block_w1": "present", "block_m3": None},
                "not-a-date": {"block_m1": "present"},
                "2026-01-07": {"block_w1": "maybe"},
                "2026-01-09": "garbage",
            }
        )
        self.assertEqual(applied, 1)
        self.assertEqual(ledger.as_dict(), {"2026-01-05": {"block_m1": "present"}})

    def test_to_records_sorted(self) -> None:
        ledger = AttendanceLedger()
        ledger.mark("2026-01-09", "block_f1", "absent")
        ledger.mark("2026-01-05", "block_m3", "present")
        ledger.mark("2026-01-05", "block_m1", "present")
        self.assertEqual(
            ledger.to_records(),
            [
                AttendanceRecord("2026-01-05", "block_m1", "present"),
                AttendanceRecord("2026-01-05", "block_m3", "present"),
                AttendanceRecord("2026-01-09", "block_f1", "absent"),
            ],
        )


if __name__ == "__main__":
    unittest.main()
