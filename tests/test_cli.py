"""
Tests for CLI entry points.

These tests focus on:
- Argument validation and exit codes
- Marks persisted to a temporary attendance file
  (to avoid touching real user data during tests)
"""

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from classbuddy.cli import main
from classbuddy.storage import load_attendance

from semester_fixture import semester_dict


def run_cli(argv: list[str]) -> tuple[int, str]:
    buf = io.StringIO()
    try:
        with contextlib.redirect_stdout(buf):
            main(argv)
    except SystemExit as e:
        return e.code, buf.getvalue()
    raise AssertionError("main() must exit via SystemExit")


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_file = str(Path(self._tmp.name) / "attendance.json")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def cli(self, *args: str) -> tuple[int, str]:
        return run_cli(["--data-file", self.data_file, *args])

    def test_mark_and_clear_roundtrip(self) -> None:
        code, out = self.cli("mark", "2026-02-02", "block_mon2", "present")
        self.assertEqual(code, 0)
        self.assertIn("Marked block_mon2", out)
        self.assertEqual(load_attendance(self.data_file), {"2026-02-02": {"block_mon2": "present"}})

        code, _ = self.cli("clear", "2026-02-02", "block_mon2")
        self.assertEqual(code, 0)
        self.assertEqual(load_attendance(self.data_file), {})

    def test_mark_unknown_block_fails(self) -> None:
        code, out = self.cli("mark", "2026-02-02", "block_tue2", "present")
        self.assertEqual(code, 1)
        self.assertIn("Error", out)

    def test_invalid_status_rejected_by_parser(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["--data-file", self.data_file, "mark", "2026-02-02", "block_mon2", "late"])
        self.assertNotEqual(ctx.exception.code, 0)

    def test_check_date(self) -> None:
        code, out = self.cli("check-date", "2026-01-26")
        self.assertEqual(code, 0)
        self.assertIn("Holiday: Republic Day", out)

        code, out = self.cli("check-date", "2026-03-10")
        self.assertIn("Mid-Term Exams", out)

    def test_stats_unknown_course(self) -> None:
        code, out = self.cli("stats", "XYZ 999")
        self.assertEqual(code, 1)
        self.assertIn("Unknown course", out)

    def test_status_without_marks(self) -> None:
        code, out = self.cli("status")
        self.assertEqual(code, 0)
        self.assertIn("Start marking attendance", out)

    def test_reset_requires_confirmation(self) -> None:
        self.cli("mark", "2026-02-02", "block_mon2", "absent")
        code, _ = self.cli("reset")
        self.assertEqual(code, 1)
        self.assertNotEqual(load_attendance(self.data_file), {})

        code, out = self.cli("reset", "--yes")
        self.assertEqual(code, 0)
        self.assertIn("Deleted 1 marks", out)
        self.assertEqual(load_attendance(self.data_file), {})

    def test_missing_config_exits_2(self) -> None:
        code, _ = self.cli("--config", str(Path(self._tmp.name) / "nope.json"), "status")
        self.assertEqual(code, 2)

    def test_malformed_config_entry_exits_2(self) -> None:
        data = semester_dict()
        data["courses"]["CSE 101"] = 45
        path = Path(self._tmp.name) / "semester.json"
        path.write_text(json.dumps(data), encoding="utf-8")

        code, out = self.cli("--config", str(path), "status")
        self.assertEqual(code, 2)
        self.assertIn("courses[CSE 101]", out)

    def test_mistyped_date_is_user_error(self) -> None:
        code, out = self.cli("mark", "2026-13-01", "block_mon2", "present")
        self.assertEqual(code, 1)
        self.assertIn("Invalid date", out)

        code, _ = self.cli("check-date", "2026-02-30")
        self.assertEqual(code, 1)

    def test_import_missing_csv(self) -> None:
        code, out = self.cli("import-csv", str(Path(self._tmp.name) / "nope.csv"))
        self.assertEqual(code, 1)
        self.assertIn("Cannot read records", out)
        self.assertEqual(load_attendance(self.data_file), {})

    def test_import_csv(self) -> None:
        path = Path(self._tmp.name) / "records.csv"
        path.write_text(
            "date,block_id,status\n2026-02-02,block_mon2,present\n2026-02-02,block_tue2,absent\n",
            encoding="utf-8",
        )
        code, out = self.cli("import-csv", str(path))
        self.assertEqual(code, 0)
        self.assertIn("Imported 1 records (1 skipped)", out)
        self.assertEqual(load_attendance(self.data_file), {"2026-02-02": {"block_mon2": "present"}})


if __name__ == "__main__":
    unittest.main()
