"""
Exports.

- iCalendar (.ics): every marked block as an event, importable into
  Google Calendar / Outlook / Apple Calendar
- CSV: per-course statistics (spreadsheet report) and the flat
  (date, block, status) record list, which can be imported again
"""

from __future__ import annotations

import csv
from dataclasses import asdict
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable

from classbuddy.config import SemesterConfig
from classbuddy.errors import RecordImportError
from classbuddy.ledger import AttendanceLedger
from classbuddy.model import AttendanceRecord, DetailedCourseStats, parse_date_key

RECORD_FIELDS = ["date", "block_id", "status"]

STATS_FIELDS = [
    "course",
    "course_title",
    "attended",
    "missed",
    "classes_held",
    "semester_total",
    "remaining",
    "current_percentage",
    "required_for_75",
    "max_bunks_allowed",
    "can_bunk_without_od",
    "must_attend_for_75",
    "od_allowed",
    "min_required",
    "max_bunks_with_od",
    "can_bunk_with_od",
    "projected_best",
    "projected_worst",
    "safety_margin",
    "status",
    "start_date",
    "rooms",
]


# ---------------------------------------------------------------------------
# iCalendar
# ---------------------------------------------------------------------------


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(day: date, hour: int, minute: int) -> str:
    return datetime(day.year, day.month, day.day, hour, minute).strftime("%Y%m%dT%H%M00")


def export_attendance_to_ics(
    config: SemesterConfig,
    ledger: AttendanceLedger,
    out_path: str | Path,
    include_holidays: bool = False,
) -> int:
    """
    Export marked blocks to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//ClassBuddy//EN",
        "CALSCALE:GREGORIAN",
    ]
    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    count = 0
    for key, record in ledger.items():
        day = parse_date_key(key)
        blocks = {b.block_id: b for b in config.timetable.blocks_for_date(day)}
        for block_id in sorted(record):
            block = blocks.get(block_id)
            if block is None:
                continue
            status = record[block_id]
            summary = f"{block.course_code} {config.course_title(block.course_code)} ({status})"

            lines.append("BEGIN:VEVENT")
            lines.append(f"UID:{_ics_escape(f'{key}-{block_id}@classbuddy')}")
            lines.append(f"DTSTAMP:{dtstamp}")
            lines.append(f"DTSTART:{_dt_local(day, block.start_hour, 0)}")
            lines.append(f"DTEND:{_dt_local(day, block.end_hour, 50)}")
            lines.append(f"SUMMARY:{_ics_escape(summary)}")
            if block.room:
                lines.append(f"LOCATION:{_ics_escape(block.room)}")
            lines.append(f"CATEGORIES:{status.upper()}")
            lines.append("END:VEVENT")
            count += 1

    if include_holidays:
        for h in config.calendar.holidays:
            lines.append("BEGIN:VEVENT")
            lines.append(f"UID:holiday-{h.day:%Y%m%d}@classbuddy")
            lines.append(f"DTSTAMP:{dtstamp}")
            lines.append(f"DTSTART;VALUE=DATE:{h.day:%Y%m%d}")
            lines.append(f"DTEND;VALUE=DATE:{h.day + timedelta(days=1):%Y%m%d}")
            lines.append(f"SUMMARY:{_ics_escape(f'Holiday: {h.name}')}")
            lines.append("END:VEVENT")
            count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def export_stats_to_csv(stats: Iterable[DetailedCourseStats], out_path: str | Path) -> int:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    n = 0
    with out.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=STATS_FIELDS)
        writer.writeheader()
        for s in stats:
            row = asdict(s)
            row["start_date"] = s.start_date.isoformat()
            row["rooms"] = " ".join(s.rooms)
            row["current_percentage"] = f"{s.current_percentage:.2f}"
            row["projected_best"] = f"{s.projected_best:.2f}"
            row["projected_worst"] = f"{s.projected_worst:.2f}"
            writer.writerow(row)
            n += 1
    return n


def export_records_to_csv(ledger: AttendanceLedger, out_path: str | Path) -> int:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    records = ledger.to_records()
    with out.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(RECORD_FIELDS)
        for r in records:
            writer.writerow([r.date_key, r.block_id, r.status])
    return len(records)


def import_records_from_csv(path: str | Path) -> list[AttendanceRecord]:
    """
    Read (date, block_id, status) rows. Rows with missing cells are skipped;
    validation happens when the records are loaded into a ledger.
    An unreadable file raises RecordImportError.
    """
    out: list[AttendanceRecord] = []
    try:
        with Path(path).open("r", encoding="utf-8", newline="") as f:
            for row in csv.DictReader(f):
                d = (row.get("date") or "").strip()
                b = (row.get("block_id") or "").strip()
                s = (row.get("status") or "").strip()
                if d and b and s:
                    out.append(AttendanceRecord(date_key=d, block_id=b, status=s))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise RecordImportError(f"Cannot read records from {path}: {e}") from e
    return out
