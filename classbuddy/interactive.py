from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from classbuddy.blocks import ONGOING, UPCOMING, class_status_at, format_timedelta
from classbuddy.errors import ClassBuddyError
from classbuddy.export import export_attendance_to_ics
from classbuddy.model import ABSENT, PRESENT, DateSummary, DetailedCourseStats, as_date, date_key, parse_date_key
from classbuddy.projection import CRITICAL, DANGER, SAFE, WARNING

if TYPE_CHECKING:
    from classbuddy.cli import Context


console = Console()

STATUS_STYLE = {
    SAFE: "green",
    WARNING: "yellow",
    DANGER: "dark_orange",
    CRITICAL: "red",
}

MARK_STYLE = {
    PRESENT: "[green]present[/]",
    ABSENT: "[red]absent[/]",
}


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    return console.input(msg)


def _styled_status(status: str) -> str:
    style = STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/]"


def run_interactive(ctx: "Context") -> None:
    """
    Interactive menu loop. Every change is saved immediately.
    """
    selected = date.today()

    while True:
        _print_header(ctx)

        choice = _prompt(
            "\n[1] Day view + mark attendance\n"
            "[2] Course breakdown\n"
            "[3] Course details\n"
            "[4] Export .ics\n"
            "[5] Sync with server\n"
            "[6] Month calendar\n"
            "[0] Exit\n"
            "Select: "
        ).strip()

        if choice == "0":
            _println("Bye.")
            return

        if choice == "1":
            selected = _flow_day(ctx, selected)
        elif choice == "2":
            _flow_breakdown(ctx)
        elif choice == "3":
            _flow_course_details(ctx)
        elif choice == "4":
            _flow_export(ctx)
        elif choice == "5":
            _flow_sync(ctx)
        elif choice == "6":
            selected = _flow_month(ctx, selected)
        else:
            _println("Invalid choice.")


def _print_header(ctx: "Context") -> None:
    engine = ctx.engine
    status = engine.worst_course_status()
    name = ctx.config.name or "semester"

    _println("\n=== ClassBuddy (interactive) ===")
    _println(
        f"{name}: {ctx.config.calendar.semester_start.isoformat()} -> {ctx.config.calendar.semester_end.isoformat()}"
        f" | marked dates: {len(ctx.ledger.marked_dates())}"
    )
    _println(f"Overall: {engine.overall_percentage():.2f}% | {_styled_status(status.status)} {status.message}")


def _day_table(ctx: "Context", day: date) -> Table:
    key = date_key(day)
    record = ctx.ledger.records_for_date(key)

    table = Table(title=f"{key} ({day:%A})", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Time")
    table.add_column("Course")
    table.add_column("Room")
    table.add_column("Hrs", justify="right")
    table.add_column("Mark")

    for i, b in enumerate(ctx.config.timetable.blocks_for_date(day), start=1):
        course = f"[bold cyan]{b.course_code}[/] {ctx.config.course_title(b.course_code)}"
        if b.is_lab:
            course += " [magenta](lab)[/]"
        if b.is_oe:
            course += " [magenta](OE)[/]"
        mark = MARK_STYLE.get(record.get(b.block_id, ""), "-")
        table.add_row(str(i), f"{b.start_time}-{b.end_time}", course, b.room, str(b.duration_hours), mark)
    return table


def _print_now(ctx: "Context", day: date) -> None:
    if day != date.today():
        return
    blocks = ctx.config.timetable.blocks_for_date(day)
    st = class_status_at(blocks, datetime.now())
    if st.kind == ONGOING and st.current and st.time_left:
        _println(f"[bold]Ongoing:[/] {st.current.course_code} @ {st.current.room}, {format_timedelta(st.time_left)} left")
    elif st.kind == UPCOMING and st.next and st.time_until:
        _println(f"[bold]Next:[/] {st.next.course_code} @ {st.next.room} in {format_timedelta(st.time_until)}")


def _flow_day(ctx: "Context", day: date) -> date:
    """
    Show one date; mark/clear blocks; move between days.
    Returns the last viewed date so the menu remembers it.
    """
    while True:
        fact = ctx.config.calendar.classify(day)
        if not fact.has_classes:
            _println(f"\n[yellow]{ctx.config.calendar.no_class_message(day)}[/]")

        blocks = ctx.config.timetable.blocks_for_date(day)
        if blocks:
            console.print(_day_table(ctx, day))
            summary = ctx.engine.date_summary(date_key(day))
            _println(f"Present: {summary.present} hrs | Absent: {summary.absent} hrs")
            _print_now(ctx, day)
        else:
            _println(f"{date_key(day)} ({day:%A}): no classes in the timetable.")

        cmd = _prompt(
            "\n<n>p / <n>a / <n>c = present / absent / clear block n, "
            "[ / ] = previous / next day, YYYY-MM-DD = jump, blank = back: "
        ).strip().lower()

        if not cmd:
            return day
        if cmd == "[":
            day -= timedelta(days=1)
            continue
        if cmd == "]":
            day += timedelta(days=1)
            continue
        if "-" in cmd:
            try:
                day = as_date(cmd)
            except ClassBuddyError as e:
                _println(str(e))
            continue

        num, action = cmd[:-1], cmd[-1:]
        if not num.isdigit() or action not in ("p", "a", "c"):
            _println("Not understood.")
            continue
        i = int(num)
        if not (1 <= i <= len(blocks)):
            _println("Out of range.")
            continue

        block = blocks[i - 1]
        synced = ctx.synced()
        try:
            if action == "c":
                result = synced.clear(date_key(day), block.block_id)
            else:
                result = synced.mark(date_key(day), block.block_id, PRESENT if action == "p" else ABSENT)
        except (ClassBuddyError, ValueError) as e:
            _println(f"[red]{e}[/]")
            continue

        ctx.save()
        if not result.ok:
            _println(f"[yellow]Warning:[/] {result.message}")


# ---------------------------------------------------------------------------
# Month calendar
# ---------------------------------------------------------------------------

GOOD_DAY = "good"
LOW_DAY = "low"

MARKER_STYLE = {
    GOOD_DAY: "[green]*[/]",
    LOW_DAY: "[red]*[/]",
}


def day_marker(summary: DateSummary, target: float = 75.0) -> Optional[str]:
    """
    Dot for one calendar cell: good when the hours marked present that day
    reach the target share, low otherwise. None when nothing is marked.
    """
    total = summary.present + summary.absent
    if total == 0:
        return None
    return GOOD_DAY if 100.0 * summary.present / total >= target else LOW_DAY


def month_markers(ctx: "Context", year: int, month: int) -> dict[date, str]:
    engine = ctx.engine
    out: dict[date, str] = {}
    for key in ctx.ledger.marked_dates():
        day = parse_date_key(key)
        if (day.year, day.month) != (year, month):
            continue
        marker = day_marker(engine.date_summary(key), ctx.config.target_percentage)
        if marker:
            out[day] = marker
    return out


def _month_table(ctx: "Context", year: int, month: int, selected: date) -> Table:
    markers = month_markers(ctx, year, month)
    table = Table(title=f"{calendar.month_name[month]} {year}", box=box.SIMPLE)
    for name in ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"):
        table.add_column(name, justify="right")

    for week in calendar.monthcalendar(year, month):
        cells: list[str] = []
        for n in week:
            if n == 0:
                cells.append("")
                continue
            day = date(year, month, n)
            text = str(n)
            if not ctx.config.calendar.is_teaching_day(day):
                text = f"[dim]{text}[/]"
            if day in markers:
                text = f"[bold]{text}[/]{MARKER_STYLE[markers[day]]}"
            if day == selected:
                text = f"[reverse]{text}[/]"
            cells.append(text)
        table.add_row(*cells)
    return table


def _flow_month(ctx: "Context", selected: date) -> date:
    """
    Month grid with per-date markers. Picking a day number opens the day view.
    """
    year, month = selected.year, selected.month
    while True:
        console.print(_month_table(ctx, year, month, selected))
        _println(
            f"{MARKER_STYLE[GOOD_DAY]} >= {ctx.config.target_percentage:g}% attended   "
            f"{MARKER_STYLE[LOW_DAY]} < {ctx.config.target_percentage:g}% attended"
        )

        cmd = _prompt("\n[ / ] = previous / next month, <day> = open day, blank = back: ").strip()
        if not cmd:
            return selected
        if cmd == "[":
            year, month = (year - 1, 12) if month == 1 else (year, month - 1)
            continue
        if cmd == "]":
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
            continue
        if not cmd.isdigit() or not (1 <= int(cmd) <= calendar.monthrange(year, month)[1]):
            _println("Not understood.")
            continue

        selected = _flow_day(ctx, date(year, month, int(cmd)))
        year, month = selected.year, selected.month


def _flow_breakdown(ctx: "Context") -> None:
    stats = ctx.engine.all_course_stats()
    if not stats:
        _println("No courses configured.")
        return

    table = Table(title="Course breakdown", box=box.SIMPLE)
    table.add_column("Course")
    table.add_column("Title")
    table.add_column("%", justify="right")
    table.add_column("Held", justify="right")
    table.add_column("Bunk", justify="right")
    table.add_column("Attend", justify="right")
    table.add_column("Status")

    for s in stats:
        pct = f"{s.current_percentage:.2f}" if s.classes_held else "-"
        table.add_row(
            f"[bold cyan]{s.course}[/]",
            s.course_title,
            pct,
            f"{s.attended}/{s.classes_held}",
            str(s.can_bunk_without_od),
            str(s.must_attend_for_75),
            _styled_status(s.status),
        )
    console.print(table)


def _status_message(s: DetailedCourseStats) -> str:
    if s.classes_held == 0:
        return "No classes held yet. Start marking attendance!"
    if s.current_percentage >= 85:
        return "Excellent! You have a comfortable buffer."
    if s.current_percentage >= 75:
        return "Good! But be careful with bunks."
    if s.current_percentage >= 65:
        return "Warning! Attendance is getting low."
    return "Critical! Immediate action required."


def _flow_course_details(ctx: "Context") -> None:
    codes = sorted(ctx.config.courses)
    for i, code in enumerate(codes, start=1):
        _println(f"{i}) {code} {ctx.config.course_title(code)}")

    pick = _prompt("Course number [blank = back]: ").strip()
    if not pick:
        return
    if not pick.isdigit() or not (1 <= int(pick) <= len(codes)):
        _println("Out of range.")
        return

    s = ctx.engine.course_stats(codes[int(pick) - 1])
    if s is None:
        return

    lines = [
        f"{_styled_status(s.status)} {s.current_percentage:.2f}%  {_status_message(s)}",
        "",
        f"Classes held:   {s.classes_held} / {s.semester_total} hrs ({s.remaining} remaining)",
        f"Attended:       {s.attended} hrs ({s.missed} missed)",
        f"Need to attend: {s.must_attend_for_75} hrs for 75%",
        f"OD allowed:     {s.od_allowed} hrs (15% relaxation)",
        "",
        f"Max bunks (75%):          {s.max_bunks_allowed} hrs",
        f"Remaining bunks (no OD):  {s.can_bunk_without_od} hrs",
        f"Remaining bunks (max OD): {s.can_bunk_with_od} hrs (need only {s.min_required} of {s.semester_total} hrs)",
    ]
    if s.safety_margin > 0:
        lines.append(f"Safety buffer:  {s.safety_margin} hrs above 75% of classes held")
    if s.classes_held > 0 and s.remaining > 0:
        lines.append("")
        lines.append(f"Attend all remaining: [green]{s.projected_best:.2f}%[/]")
        lines.append(f"Miss all remaining:   [red]{s.projected_worst:.2f}%[/]")
    lines.append("")
    lines.append(f"Started: {s.start_date.isoformat()} | Rooms: {', '.join(s.rooms)}")

    console.print(Panel("\n".join(lines), title=f"{s.course} {s.course_title}", box=box.ROUNDED))


def _flow_export(ctx: "Context") -> None:
    if not ctx.ledger.marked_dates():
        _println("Nothing marked yet.")
        return

    downloads = Path.home() / "Downloads"
    default_name = "classbuddy.ics"

    out_in = _prompt(f"File name, default is [{default_name}]: ").strip()
    out_path: Path = downloads / (out_in or default_name)
    if out_path.suffix.lower() != ".ics":
        out_path = out_path.with_suffix(".ics")

    n = export_attendance_to_ics(ctx.config, ctx.ledger, out_path)
    _println(f"\nExported {n} events.")
    _println(f"Saved to: {out_path.resolve()}")


def _flow_sync(ctx: "Context") -> Optional[bool]:
    synced = ctx.synced()
    if synced.client is None:
        _println("Backend is not enabled (set CLASSBUDDY_USE_BACKEND=1).")
        return None

    direction = _prompt("[1] Push local marks  [2] Pull from server: ").strip()
    if direction == "1":
        result = synced.push_all()
    elif direction == "2":
        result = synced.pull()
        if result.ok:
            ctx.save()
    else:
        _println("Invalid choice.")
        return None

    style = "green" if result.ok else "yellow"
    _println(f"[{style}]{result.message}[/]")
    return result.ok
