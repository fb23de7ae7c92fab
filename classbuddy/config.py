"""
Configuration.

Two layers:

1) SemesterConfig: the static semester data (calendar, weekly timetable,
   course metadata), loaded from a JSON file. The bundled default is
   classbuddy/data/semester.json. Configs are plain immutable objects passed
   into the engine, so several semesters can coexist (e.g. in tests).

2) Settings: runtime knobs from environment variables / .env
   (data directory, remote API, logging).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from classbuddy.academic_calendar import AcademicCalendar
from classbuddy.blocks import Timetable
from classbuddy.errors import ConfigError
from classbuddy.log import get_logger
from classbuddy.model import (
    CourseMetadata,
    ExamPeriod,
    Holiday,
    WeeklySlot,
    default_min_required,
    default_od_allowance,
    parse_date_key,
    parse_weekday,
)

log = get_logger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent


def _default_semester_path() -> Path:
    return PACKAGE_DIR / "data" / "semester.json"


# ---------------------------------------------------------------------------
# Semester configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SemesterConfig:
    calendar: AcademicCalendar
    timetable: Timetable
    courses: Mapping[str, CourseMetadata]
    name: str = ""
    target_percentage: float = 75.0

    def course(self, code: str) -> Optional[CourseMetadata]:
        return self.courses.get(code)

    def course_title(self, code: str) -> str:
        meta = self.courses.get(code)
        return meta.title if meta and meta.title else code


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where} must be an object, got {type(value).__name__}")
    return value


def _list(value: Any, where: str) -> list[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"{where} must be a list, got {type(value).__name__}")
    return value


def _require(data: Any, key: str, where: str) -> Any:
    data = _mapping(data, where)
    if key not in data or data[key] in (None, ""):
        raise ConfigError(f"Missing '{key}' in {where}")
    return data[key]


def _flag(raw: Mapping[str, Any], key: str, where: str) -> bool:
    # "false" is a non-empty string, so no bool() coercion here
    value = raw.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"{where}: '{key}' must be true or false, got {value!r}")
    return value


def _non_negative_int(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{where} must be a non-negative integer, got {value!r}")
    return value


def _parse_date(value: Any, where: str) -> date:
    try:
        return parse_date_key(str(value))
    except ConfigError as e:
        raise ConfigError(f"{where}: {e}") from None


def _parse_hour(raw: Any, where: str) -> int:
    """
    Accept 9, "9", "09:00". Slots always start on the full hour.
    """
    if isinstance(raw, bool):
        raise ConfigError(f"{where}: invalid time {raw!r}")
    if isinstance(raw, int):
        hour = raw
    else:
        text = str(raw).strip()
        parts = text.split(":")
        if len(parts) > 2 or not parts[0].isdigit():
            raise ConfigError(f"{where}: invalid time {raw!r}")
        if len(parts) == 2 and parts[1] != "00":
            raise ConfigError(f"{where}: slots must start on the hour, got {raw!r}")
        hour = int(parts[0])
    if not (0 <= hour <= 23):
        raise ConfigError(f"{where}: hour out of range {raw!r}")
    return hour


def _parse_target(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not (0 < raw <= 100):
        raise ConfigError(f"semester.target_percentage must be a number in (0, 100], got {raw!r}")
    return float(raw)


def _parse_slot(weekday: str, raw: Any) -> WeeklySlot:
    where = f"timetable.{weekday}"
    slot_id = str(_require(raw, "id", where))
    where = f"{where}[{slot_id}]"
    hour_raw = raw["time"] if "time" in raw else _require(raw, "hour", where)
    return WeeklySlot(
        slot_id=slot_id,
        weekday=weekday,
        start_hour=_parse_hour(hour_raw, where),
        course_code=str(_require(raw, "course", where)).strip(),
        room=str(raw.get("room", "") or "").strip(),
        is_lab=_flag(raw, "is_lab", where),
        is_oe=_flag(raw, "is_oe", where),
    )


def _parse_course(code: str, raw: Any) -> CourseMetadata:
    where = f"courses[{code}]"
    raw = _mapping(raw, where)
    total = _non_negative_int(raw.get("total_hours"), f"{where}.total_hours")

    od = raw.get("od_allowed")
    if od is None:
        od = default_od_allowance(total)
    od = _non_negative_int(od, f"{where}.od_allowed")
    min_required = raw.get("min_required")
    if min_required is None:
        min_required = default_min_required(total, od)
    min_required = _non_negative_int(min_required, f"{where}.min_required")

    rooms = raw.get("rooms", [])
    if not isinstance(rooms, list):
        rooms = [rooms]

    return CourseMetadata(
        course_code=code,
        total_semester_hours=total,
        od_allowance=od,
        min_required=min_required,
        rooms=tuple(str(r) for r in rooms),
        title=str(raw.get("title", "") or ""),
        faculty=str(raw.get("faculty", "") or ""),
    )


def semester_config_from_dict(data: Mapping[str, Any]) -> SemesterConfig:
    """
    Build a SemesterConfig from the parsed JSON structure.
    Raises ConfigError for anything malformed.
    """
    data = _mapping(data, "Semester configuration")

    semester = _mapping(_require(data, "semester", "configuration"), "semester")
    start = _parse_date(_require(semester, "start", "semester"), "semester.start")
    end = _parse_date(_require(semester, "end", "semester"), "semester.end")
    target = _parse_target(semester.get("target_percentage", 75.0))

    holidays = [
        Holiday(day=_parse_date(_require(h, "date", "holidays"), "holidays"), name=str(h.get("name", "Holiday")))
        for h in _list(data.get("holidays", []), "holidays")
    ]
    exam_periods = [
        ExamPeriod(
            start=_parse_date(_require(p, "start", "exam_periods"), "exam_periods"),
            end=_parse_date(_require(p, "end", "exam_periods"), "exam_periods"),
            name=str(p.get("name", "Exams")),
        )
        for p in _list(data.get("exam_periods", []), "exam_periods")
    ]

    courses_raw = _mapping(data.get("courses", {}), "courses")
    courses: dict[str, CourseMetadata] = {}
    overrides: dict[str, date] = {}
    for code, raw in courses_raw.items():
        meta = _parse_course(str(code), raw)
        courses[meta.course_code] = meta
        if raw.get("start_date"):
            overrides[meta.course_code] = _parse_date(raw["start_date"], f"courses[{code}].start_date")

    timetable_raw = _mapping(data.get("timetable", {}), "timetable")
    slots_by_day: dict[str, list[WeeklySlot]] = {}
    seen_ids: set[str] = set()
    for day_name, slots in timetable_raw.items():
        weekday = parse_weekday(day_name)
        parsed = [_parse_slot(weekday, s) for s in _list(slots, f"timetable.{weekday}")]
        for s in parsed:
            if s.slot_id in seen_ids:
                raise ConfigError(f"Duplicate slot id: {s.slot_id!r}")
            seen_ids.add(s.slot_id)
        slots_by_day[weekday] = parsed

    timetable = Timetable(slots_by_day)
    for code in timetable.courses():
        if code not in courses:
            log.warning("course_without_metadata", course=code)

    return SemesterConfig(
        calendar=AcademicCalendar(start, end, holidays, exam_periods, overrides),
        timetable=timetable,
        courses=courses,
        name=str(semester.get("name", "")),
        target_percentage=target,
    )


def load_semester_config(path: str | Path | None = None) -> SemesterConfig:
    """
    Load a semester configuration file (default: the bundled semester).
    """
    config_path = Path(path) if path is not None else _default_semester_path()
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Semester configuration not found: {config_path}") from None
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read semester configuration {config_path}: {e}") from None
    return semester_config_from_dict(data)


# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Runtime settings loaded from CLASSBUDDY_* environment variables or .env."""

    data_dir: Path = Field(
        default=Path.home() / ".classbuddy",
        description="Directory holding attendance.json",
    )
    semester_file: Optional[Path] = Field(
        default=None,
        description="Semester configuration JSON (bundled semester if unset)",
    )

    # Remote store (optional, mirrors local marks)
    use_backend: bool = Field(default=False, description="Mirror marks to the remote API")
    api_url: str = Field(default="http://localhost:3001/api", description="Remote API base URL")
    user_id: int = Field(default=1, description="User id sent to the remote API")
    request_timeout: float = Field(default=10.0, description="HTTP timeout in seconds")

    # Logging
    log_json: bool = Field(default=False, description="Output logs in JSON format")
    log_level: str = Field(default="WARNING", description="DEBUG, INFO, WARNING, ERROR, CRITICAL")

    model_config = {
        "env_prefix": "CLASSBUDDY_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def attendance_path(self) -> Path:
        return self.data_dir / "attendance.json"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Cached Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
