"""
Persistent local storage for the attendance ledger.

This module manages the file:

    <data_dir>/attendance.json      (default data_dir: ~/.classbuddy)

Format:

    {"version": 1, "attendance": {"2026-01-05": {"block_mon1": "present"}}}

The semester configuration (timetable, courses, holidays) is static and
lives in classbuddy/data/semester.json; this file only stores the user's
own marks, so a new semester file never touches them.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from classbuddy.config import SemesterConfig, get_settings
from classbuddy.ledger import AttendanceLedger
from classbuddy.log import get_logger

log = get_logger(__name__)

FORMAT_VERSION = 1


def _default_attendance_path() -> Path:
    """
    Using a function instead of a constant lets tests (and env vars)
    redirect the file.
    """
    return get_settings().attendance_path


def load_attendance(path: str | Path | None = None) -> dict[str, dict[str, str]]:
    """
    Load the nested {date: {block: status}} mapping.

    Returns {} if the file does not exist or is invalid; a broken file
    never crashes the application.
    """
    attendance_path = Path(path) if path is not None else _default_attendance_path()

    # First run: nothing marked yet
    if not attendance_path.exists():
        return {}

    try:
        data = json.loads(attendance_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        log.warning("storage_load_failed", path=str(attendance_path), error=str(e))
        return {}

    # plain {date: {...}} files (older format) are accepted as well
    mapping = data.get("attendance", data) if isinstance(data, dict) else None
    if not isinstance(mapping, dict):
        log.warning("storage_load_failed", path=str(attendance_path), error="unexpected JSON shape")
        return {}

    out: dict[str, dict[str, str]] = {}
    for key, day in mapping.items():
        if key == "version" or not isinstance(day, dict):
            continue
        marks = {str(b): str(s) for b, s in day.items() if isinstance(s, str)}
        if marks:
            out[str(key)] = marks
    return out


def save_attendance(attendance: AttendanceLedger | Mapping[str, Any], path: str | Path | None = None) -> None:
    """
    Save the ledger (or a nested mapping). Creates parent directories if needed.
    Keys are sorted to keep the file stable and diff-friendly.
    """
    attendance_path = Path(path) if path is not None else _default_attendance_path()
    attendance_path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(attendance, AttendanceLedger):
        mapping = attendance.as_dict()
    else:
        mapping = {str(k): dict(v) for k, v in attendance.items() if v}

    payload = {"version": FORMAT_VERSION, "attendance": mapping}
    attendance_path.write_text(
        json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True),
        encoding="utf-8",
    )


def load_ledger(config: SemesterConfig, path: str | Path | None = None) -> AttendanceLedger:
    """
    Build a ledger validated against the semester timetable.
    Entries for blocks that cannot exist on their weekday are dropped.
    """
    ledger = AttendanceLedger(config.timetable, config.calendar)
    ledger.load_mapping(load_attendance(path))
    return ledger
