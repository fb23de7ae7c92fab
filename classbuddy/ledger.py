"""
Attendance ledger.

Sparse in-memory map:

    date key ('YYYY-MM-DD') -> block id -> 'present' | 'absent'

A missing entry means "unmarked", which is different from "absent".
Persistence and remote sync live in storage.py / sync.py, the ledger
itself does no I/O.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from classbuddy.academic_calendar import AcademicCalendar
from classbuddy.blocks import Timetable
from classbuddy.errors import ClassBuddyError, CourseNotStartedError, UnknownBlockError
from classbuddy.log import get_logger
from classbuddy.model import AttendanceRecord, date_key, parse_date_key, validate_status

log = get_logger(__name__)


class AttendanceLedger:
    """
    Holds the user's marks.

    With a timetable attached, marks for blocks that do not exist on the
    weekday of the date are rejected. With enforce_course_start (and a
    calendar), marks dated before the course's effective start are rejected.
    """

    def __init__(
        self,
        timetable: Optional[Timetable] = None,
        calendar: Optional[AcademicCalendar] = None,
        *,
        enforce_course_start: bool = False,
    ):
        self._timetable = timetable
        self._calendar = calendar
        self._enforce_course_start = enforce_course_start
        self._by_date: dict[str, dict[str, str]] = {}

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check(self, key: str, block_id: str) -> str:
        day = parse_date_key(key)
        norm_key = date_key(day)

        if self._timetable is None:
            return norm_key

        block = next((b for b in self._timetable.blocks_for_date(day) if b.block_id == block_id), None)
        if block is None:
            raise UnknownBlockError(f"Block {block_id!r} does not exist on {norm_key} ({day:%A})")

        if self._enforce_course_start and self._calendar is not None:
            start = self._calendar.course_start_date(block.course_code)
            if day < start:
                raise CourseNotStartedError(
                    f"{block.course_code} starts on {date_key(start)}, cannot mark {norm_key}"
                )
        return norm_key

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mark(self, key: str, block_id: str, status: str) -> None:
        """Upsert one mark; marking again overwrites (last write wins)."""
        st = validate_status(status)
        norm_key = self._check(key, block_id)
        self._by_date.setdefault(norm_key, {})[block_id] = st

    def clear(self, key: str, block_id: str) -> None:
        """Remove one mark. No-op if it does not exist."""
        norm_key = date_key(parse_date_key(key))
        day = self._by_date.get(norm_key)
        if not day or block_id not in day:
            return
        del day[block_id]
        # keep the map sparse: mark + clear restores the previous state
        if not day:
            del self._by_date[norm_key]

    def reset_all(self) -> None:
        self._by_date.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def records_for_date(self, key: str) -> dict[str, str]:
        norm_key = date_key(parse_date_key(key))
        return dict(self._by_date.get(norm_key, {}))

    def status_of(self, key: str, block_id: str) -> Optional[str]:
        return self.records_for_date(key).get(block_id)

    def marked_dates(self) -> set[str]:
        return {k for k, v in self._by_date.items() if v}

    def items(self) -> list[tuple[str, dict[str, str]]]:
        """(date key, copy of block->status) pairs, sorted by date."""
        return [(k, dict(self._by_date[k])) for k in sorted(self._by_date)]

    def as_dict(self) -> dict[str, dict[str, str]]:
        return {k: dict(v) for k, v in self.items()}

    def to_records(self) -> list[AttendanceRecord]:
        out: list[AttendanceRecord] = []
        for key, day in self.items():
            for block_id in sorted(day):
                out.append(AttendanceRecord(date_key=key, block_id=block_id, status=day[block_id]))
        return out

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_date.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttendanceLedger):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return f"AttendanceLedger(dates={len(self._by_date)}, marks={len(self)})"

    # ------------------------------------------------------------------
    # Bulk loading
    # ------------------------------------------------------------------

    def load_records(self, records: Iterable[AttendanceRecord]) -> int:
        """
        Apply records on top of the current state.

        Invalid rows (bad date, unknown status, impossible block) are logged
        and skipped so one broken row never discards the rest.
        Returns the number of applied records.
        """
        applied = 0
        for rec in records:
            try:
                self.mark(rec.date_key, rec.block_id, rec.status)
            except (ClassBuddyError, ValueError) as e:
                log.warning(
                    "ledger_entry_skipped",
                    date=rec.date_key,
                    block_id=rec.block_id,
                    status=rec.status,
                    reason=str(e),
                )
                continue
            applied += 1
        return applied

    def load_mapping(self, mapping: Mapping[str, Any]) -> int:
        """
        Apply a nested {date: {block: status}} mapping (the JSON/REST shape).
        Null statuses mean "unmarked" and are ignored.
        """
        records: list[AttendanceRecord] = []
        for key, day in (mapping or {}).items():
            if not isinstance(day, Mapping):
                log.warning("ledger_date_skipped", date=key, reason="not a mapping")
                continue
            for block_id, status in day.items():
                if status is None:
                    continue
                records.append(AttendanceRecord(date_key=str(key), block_id=str(block_id), status=str(status)))
        return self.load_records(records)

    @classmethod
    def from_records(
        cls,
        records: Iterable[AttendanceRecord],
        timetable: Optional[Timetable] = None,
        calendar: Optional[AcademicCalendar] = None,
        *,
        enforce_course_start: bool = False,
    ) -> "AttendanceLedger":
        ledger = cls(timetable, calendar, enforce_course_start=enforce_course_start)
        ledger.load_records(records)
        return ledger
