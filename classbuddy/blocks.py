"""
Block grouping.

Consecutive one-hour slots of the same course form one "block", the unit
a student marks present/absent.

Merge rule:
    same course AND slot.start_hour == open_block.end_hour + 1

Blocks are derived from the static weekly timetable on every read,
nothing here holds mutable state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Optional, Sequence

from classbuddy.model import WEEKDAYS, ClassBlock, WeeklySlot, as_date, parse_weekday, weekday_of


def _block_from_slot(slot: WeeklySlot) -> ClassBlock:
    return ClassBlock(
        block_id=f"block_{slot.slot_id}",
        course_code=slot.course_code,
        room=slot.room,
        start_hour=slot.start_hour,
        end_hour=slot.start_hour,
        duration_hours=1,
        slot_ids=(slot.slot_id,),
        is_lab=slot.is_lab,
        is_oe=slot.is_oe,
    )


def _extend(block: ClassBlock, slot: WeeklySlot) -> ClassBlock:
    return ClassBlock(
        block_id=block.block_id,
        course_code=block.course_code,
        room=block.room,
        start_hour=block.start_hour,
        end_hour=slot.start_hour,
        duration_hours=block.duration_hours + 1,
        slot_ids=block.slot_ids + (slot.slot_id,),
        is_lab=block.is_lab or slot.is_lab,
        is_oe=block.is_oe or slot.is_oe,
    )


def group_into_blocks(slots: Iterable[WeeklySlot]) -> list[ClassBlock]:
    """
    Merge one weekday's slots into blocks.

    Input order does not matter: slots are re-sorted by (start_hour, slot_id)
    so the same set of slots always yields the same blocks.
    """
    ordered = sorted(slots, key=lambda s: (s.start_hour, s.slot_id))

    blocks: list[ClassBlock] = []
    current: Optional[ClassBlock] = None

    for slot in ordered:
        if (
            current is not None
            and current.course_code == slot.course_code
            and slot.start_hour == current.end_hour + 1
        ):
            current = _extend(current, slot)
            continue

        if current is not None:
            blocks.append(current)
        current = _block_from_slot(slot)

    # last open block
    if current is not None:
        blocks.append(current)

    return blocks


class Timetable:
    """
    The static weekly timetable (Monday-Friday).
    """

    def __init__(self, slots_by_weekday: Mapping[str, Sequence[WeeklySlot]]):
        days: dict[str, tuple[WeeklySlot, ...]] = {wd: () for wd in WEEKDAYS}
        for name, slots in slots_by_weekday.items():
            days[parse_weekday(name)] = tuple(slots)
        self._slots = days

    def slots_for_day(self, weekday: str) -> tuple[WeeklySlot, ...]:
        return self._slots[parse_weekday(weekday)]

    def blocks_for_day(self, weekday: str) -> list[ClassBlock]:
        return group_into_blocks(self.slots_for_day(weekday))

    def blocks_for_date(self, day: date | str) -> list[ClassBlock]:
        """Blocks scheduled on the weekday of a date ([] on weekends)."""
        wd = weekday_of(as_date(day))
        if wd is None:
            return []
        return self.blocks_for_day(wd)

    def block_ids_for_date(self, day: date | str) -> set[str]:
        return {b.block_id for b in self.blocks_for_date(day)}

    def all_blocks(self) -> dict[str, list[ClassBlock]]:
        return {wd: self.blocks_for_day(wd) for wd in WEEKDAYS}

    def all_blocks_for_course(self, course: str) -> list[ClassBlock]:
        out: list[ClassBlock] = []
        for wd in WEEKDAYS:
            out.extend(b for b in self.blocks_for_day(wd) if b.course_code == course)
        return out

    def weekly_hours(self, course: str) -> int:
        return sum(b.duration_hours for b in self.all_blocks_for_course(course))

    def courses(self) -> list[str]:
        return sorted({s.course_code for slots in self._slots.values() for s in slots})


# ---------------------------------------------------------------------------
# Ongoing / upcoming class
# ---------------------------------------------------------------------------

ONGOING = "ongoing"
UPCOMING = "upcoming"
DONE = "done"
NONE = "none"


@dataclass(frozen=True)
class ClassStatus:
    kind: str
    current: Optional[ClassBlock] = None
    next: Optional[ClassBlock] = None
    time_left: Optional[timedelta] = None
    time_until: Optional[timedelta] = None


def _block_bounds(block: ClassBlock, day: date) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day, block.start_hour, 0)
    end = datetime(day.year, day.month, day.day, block.end_hour, 50)
    return start, end


def class_status_at(blocks: Sequence[ClassBlock], now: datetime) -> ClassStatus:
    """
    What is going on right now among today's blocks.

    A block runs from start_hour:00 to end_hour:50.
    """
    if not blocks:
        return ClassStatus(NONE)

    ordered = sorted(blocks, key=lambda b: b.start_hour)
    today = now.date()

    for i, block in enumerate(ordered):
        start, end = _block_bounds(block, today)
        if start <= now < end:
            nxt = ordered[i + 1] if i + 1 < len(ordered) else None
            return ClassStatus(ONGOING, current=block, next=nxt, time_left=end - now)
        if now < start:
            return ClassStatus(UPCOMING, next=block, time_until=start - now)

    return ClassStatus(DONE)


def format_timedelta(delta: timedelta) -> str:
    total = int(delta.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
