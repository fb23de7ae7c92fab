"""
CLI (Command Line Interface).

Quick terminal commands, e.g.:

    classbuddy day 2026-02-02
    classbuddy mark 2026-02-02 block_mon2 present
    classbuddy clear 2026-02-02 block_mon2
    classbuddy stats "CSE 455"
    classbuddy status
    classbuddy check-date 2026-03-10
    classbuddy export-ics out.ics
    classbuddy interactive

Note:
- The interactive UI lives in classbuddy/interactive.py
- This CLI prints plain text (no rich formatting)
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from classbuddy.blocks import ONGOING, UPCOMING, class_status_at, format_timedelta
from classbuddy.config import SemesterConfig, Settings, get_settings, load_semester_config
from classbuddy.errors import ClassBuddyError, ConfigError, InvalidDateError
from classbuddy.export import (
    export_attendance_to_ics,
    export_records_to_csv,
    export_stats_to_csv,
    import_records_from_csv,
)
from classbuddy.ledger import AttendanceLedger
from classbuddy.log import setup_logging
from classbuddy.model import DetailedCourseStats, as_date, date_key
from classbuddy.projection import ProjectionEngine
from classbuddy.storage import load_ledger, save_attendance
from classbuddy.sync import SyncedLedger, SyncResult, client_from_settings


@dataclass
class Context:
    settings: Settings
    config: SemesterConfig
    ledger: AttendanceLedger
    data_file: Path

    @property
    def engine(self) -> ProjectionEngine:
        return ProjectionEngine(self.config, self.ledger)

    def synced(self) -> SyncedLedger:
        return SyncedLedger(self.ledger, client_from_settings(self.settings))

    def save(self) -> None:
        save_attendance(self.ledger, self.data_file)


def _build_context(args: argparse.Namespace) -> Context:
    """
    Load semester config + saved marks once per command.
    """
    settings = get_settings()
    config_path = args.config or settings.semester_file
    config = load_semester_config(config_path)
    data_file = Path(args.data_file) if args.data_file else settings.attendance_path
    ledger = load_ledger(config, data_file)
    return Context(settings=settings, config=config, ledger=ledger, data_file=data_file)


def _parse_day(text: Optional[str]) -> date:
    if not text or text.strip().lower() == "today":
        return date.today()
    return as_date(text.strip())


def _report_sync(result: SyncResult) -> None:
    if not result.ok:
        print(f"Warning: {result.message}")


def _stats_lines(s: DetailedCourseStats) -> list[str]:
    return [
        f"{s.course} | {s.course_title}",
        f"  Status:            {s.status} ({s.current_percentage:.2f}%)",
        f"  Classes held:      {s.classes_held} / {s.semester_total} hrs ({s.remaining} remaining)",
        f"  Attended / missed: {s.attended} / {s.missed} hrs",
        f"  Need for 75%:      {s.required_for_75} hrs (attend {s.must_attend_for_75} more)",
        f"  Can bunk:          {s.can_bunk_without_od} hrs without OD, {s.can_bunk_with_od} hrs with max OD",
        f"  OD allowed:        {s.od_allowed} hrs (min required with OD: {s.min_required})",
        f"  Safety margin:     {s.safety_margin} hrs",
        f"  Projection:        best {s.projected_best:.2f}% | worst {s.projected_worst:.2f}%",
        f"  Start date:        {s.start_date.isoformat()} | Rooms: {', '.join(s.rooms)}",
    ]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_day(args: argparse.Namespace, ctx: Context) -> int:
    """
    Print the blocks of a date with their marks, or why there are no classes.
    """
    day = _parse_day(args.date)
    key = date_key(day)
    fact = ctx.config.calendar.classify(day)

    print(f"{key} ({day:%A})")
    if not fact.has_classes:
        print(ctx.config.calendar.no_class_message(day))

    blocks = ctx.config.timetable.blocks_for_date(day)
    if not blocks:
        return 0

    record = ctx.ledger.records_for_date(key)
    for b in blocks:
        status = record.get(b.block_id, "-")
        tags = []
        if b.is_lab:
            tags.append("lab")
        if b.is_oe:
            tags.append("OE")
        tag_text = f" [{', '.join(tags)}]" if tags else ""
        print(
            f"  {b.start_time}-{b.end_time} | {b.block_id} | {b.course_code} "
            f"{ctx.config.course_title(b.course_code)}{tag_text} @ {b.room} | {status}"
        )

    summary = ctx.engine.date_summary(key)
    print(f"Present: {summary.present} hrs | Absent: {summary.absent} hrs")

    if day == date.today():
        now_status = class_status_at(blocks, datetime.now())
        if now_status.kind == ONGOING and now_status.current and now_status.time_left:
            print(f"Ongoing: {now_status.current.course_code} ({format_timedelta(now_status.time_left)} left)")
        elif now_status.kind == UPCOMING and now_status.next and now_status.time_until:
            print(f"Next: {now_status.next.course_code} in {format_timedelta(now_status.time_until)}")
    return 0


def _cmd_mark(args: argparse.Namespace, ctx: Context) -> int:
    day = _parse_day(args.date)
    result = ctx.synced().mark(date_key(day), args.block_id, args.status)
    ctx.save()
    print(f"Marked {args.block_id} on {date_key(day)} as {args.status}")
    _report_sync(result)
    return 0


def _cmd_clear(args: argparse.Namespace, ctx: Context) -> int:
    day = _parse_day(args.date)
    key = date_key(day)
    if ctx.ledger.status_of(key, args.block_id) is None:
        print(f"Not marked: {args.block_id} on {key}")
        return 0
    result = ctx.synced().clear(key, args.block_id)
    ctx.save()
    print(f"Cleared {args.block_id} on {key}")
    _report_sync(result)
    return 0


def _cmd_reset(args: argparse.Namespace, ctx: Context) -> int:
    if not args.yes:
        print("This deletes ALL attendance marks. Re-run with --yes to confirm.")
        return 1
    n = len(ctx.ledger)
    result = ctx.synced().reset_all()
    ctx.save()
    print(f"Deleted {n} marks.")
    _report_sync(result)
    return 0


def _cmd_stats(args: argparse.Namespace, ctx: Context) -> int:
    engine = ctx.engine
    if args.course:
        stats = engine.course_stats(args.course.strip())
        if stats is None:
            print(f"Unknown course: {args.course}")
            return 1
        print("\n".join(_stats_lines(stats)))
        return 0

    for s in engine.all_course_stats():
        held = f"{s.attended}/{s.classes_held}"
        print(
            f"{s.course:<8} | {s.current_percentage:6.2f}% | {held:>7} hrs | "
            f"bunk {s.can_bunk_without_od:>2} | attend {s.must_attend_for_75:>2} | {s.status}"
        )
    print(f"Overall: {engine.overall_percentage():.2f}%")
    return 0


def _cmd_status(args: argparse.Namespace, ctx: Context) -> int:
    status = ctx.engine.worst_course_status()
    print(status.message)
    return 0


def _cmd_check_date(args: argparse.Namespace, ctx: Context) -> int:
    day = _parse_day(args.date)
    message = ctx.config.calendar.no_class_message(day)
    print(f"{date_key(day)}: {message or 'Classes scheduled'}")
    return 0


def _cmd_hours(args: argparse.Namespace, ctx: Context) -> int:
    """
    Compare configured semester hours with what the timetable schedules.
    """
    engine = ctx.engine
    for code in sorted(ctx.config.courses):
        meta = ctx.config.courses[code]
        scheduled = engine.scheduled_hours(code)
        diff = meta.total_semester_hours - scheduled
        flag = "" if diff == 0 else f"  (configured {diff:+d})"
        print(f"{code:<8} | configured {meta.total_semester_hours:>3} | scheduled {scheduled:>3}{flag}")
    return 0


def _cmd_export_ics(args: argparse.Namespace, ctx: Context) -> int:
    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .ics path.")
        return 1
    n = export_attendance_to_ics(ctx.config, ctx.ledger, out_path, include_holidays=args.holidays)
    print(f"Exported {n} events to: {out_path}")
    return 0


def _cmd_export_csv(args: argparse.Namespace, ctx: Context) -> int:
    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .csv path.")
        return 1
    if args.records:
        n = export_records_to_csv(ctx.ledger, out_path)
        print(f"Exported {n} records to: {out_path}")
    else:
        n = export_stats_to_csv(ctx.engine.all_course_stats(), out_path)
        print(f"Exported {n} courses to: {out_path}")
    return 0


def _cmd_import_csv(args: argparse.Namespace, ctx: Context) -> int:
    records = import_records_from_csv(args.path)
    n = ctx.ledger.load_records(records)
    ctx.save()
    skipped = len(records) - n
    print(f"Imported {n} records" + (f" ({skipped} skipped)" if skipped else ""))
    return 0


def _cmd_sync(args: argparse.Namespace, ctx: Context) -> int:
    synced = ctx.synced()
    result = synced.push_all() if args.direction == "push" else synced.pull()
    if result.skipped:
        print("Backend is not enabled (set CLASSBUDDY_USE_BACKEND=1).")
        return 1
    if result.ok and args.direction == "pull":
        ctx.save()
    print(result.message)
    return 0 if result.ok else 1


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="classbuddy", description="ClassBuddy attendance tracker")
    parser.add_argument("--config", type=str, default=None, help="Semester configuration JSON")
    parser.add_argument("--data-file", type=str, default=None, help="Attendance JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    p_day = sub.add_parser("day", help="Show classes and marks for a date")
    p_day.add_argument("date", nargs="?", default=None, help="YYYY-MM-DD (default: today)")

    p_mark = sub.add_parser("mark", help="Mark a block present/absent")
    p_mark.add_argument("date", type=str, help="YYYY-MM-DD or 'today'")
    p_mark.add_argument("block_id", type=str, help="Block id (e.g. block_mon2)")
    p_mark.add_argument("status", choices=["present", "absent"])

    p_clear = sub.add_parser("clear", help="Remove the mark of a block")
    p_clear.add_argument("date", type=str, help="YYYY-MM-DD or 'today'")
    p_clear.add_argument("block_id", type=str)

    p_reset = sub.add_parser("reset", help="Delete all marks")
    p_reset.add_argument("--yes", action="store_true", help="Confirm deletion")

    p_stats = sub.add_parser("stats", help="Per-course statistics")
    p_stats.add_argument("course", nargs="?", default=None, help="Course code (e.g. 'CSE 455')")

    sub.add_parser("status", help="Overall bunk status")

    p_check = sub.add_parser("check-date", help="Does a date have classes?")
    p_check.add_argument("date", type=str)

    sub.add_parser("hours", help="Cross-check configured semester hours against the timetable")

    p_ics = sub.add_parser("export-ics", help="Export marked classes to .ics")
    p_ics.add_argument("out", type=str, help="Output file path (e.g. attendance.ics)")
    p_ics.add_argument("--holidays", action="store_true", help="Also export holidays")

    p_csv = sub.add_parser("export-csv", help="Export statistics (or raw records) to .csv")
    p_csv.add_argument("out", type=str)
    p_csv.add_argument("--records", action="store_true", help="Export raw (date, block, status) records")

    p_import = sub.add_parser("import-csv", help="Import raw (date, block, status) records")
    p_import.add_argument("path", type=str)

    p_sync = sub.add_parser("sync", help="Push local marks to / pull marks from the remote API")
    p_sync.add_argument("direction", choices=["push", "pull"])

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


_COMMANDS = {
    "day": _cmd_day,
    "mark": _cmd_mark,
    "clear": _cmd_clear,
    "reset": _cmd_reset,
    "stats": _cmd_stats,
    "status": _cmd_status,
    "check-date": _cmd_check_date,
    "hours": _cmd_hours,
    "export-ics": _cmd_export_ics,
    "export-csv": _cmd_export_csv,
    "import-csv": _cmd_import_csv,
    "sync": _cmd_sync,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(json_output=settings.log_json, log_level=settings.log_level)

    try:
        ctx = _build_context(args)

        if args.command == "interactive":
            from classbuddy.interactive import run_interactive

            run_interactive(ctx)
            raise SystemExit(0)

        handler = _COMMANDS.get(args.command)
        if handler is None:
            raise SystemExit(2)
        raise SystemExit(handler(args, ctx))
    except InvalidDateError as e:
        # dates typed on the command line; semester-file dates arrive as ConfigError
        print(f"Error: {e}")
        raise SystemExit(1)
    except ConfigError as e:
        print(f"Error: {e}")
        raise SystemExit(2)
    except ClassBuddyError as e:
        print(f"Error: {e}")
        raise SystemExit(1)
    except ValueError as e:
        print(f"Error: {e}")
        raise SystemExit(1)
