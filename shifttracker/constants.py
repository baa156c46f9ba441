import datetime as dt
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dataclasses import dataclass, field

from shifttracker.utils.utils import calculate_hours, normalize_time, parse_date, split_duration, time_to_str

_log = logging.getLogger(__name__)

RowDictData = Dict[str, Any]

MAIN_DIR = Path(__file__).parent.parent

DEFAULT_DB_PATH = f"{MAIN_DIR}/shifttracker.db"
CONFIG_FILE_PATH = f"{MAIN_DIR}/config.json"
LOG_FILE_PATH = f"{MAIN_DIR}/shifttracker.log"
DATE_STRING_MASK = "%Y-%m-%d"
DATE_PATTERN = r"\d{4}-\d{2}-\d{2}"
TIME_PATTERN = r"\d{1,2}:\d{2}"
DAY_OFF_PATTERN = r"выходной|day\s+off|off"
DAY_OFF_LABEL = "Выходной"
WEEKDAY_ABBREVIATIONS = {
    "вс": 0, "пн": 1, "вт": 2, "ср": 3, "чт": 4, "пт": 5, "сб": 6,
    "sun": 0, "mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6,
}


class Period(Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


@dataclass(frozen=True)
class DayEntry:
    date: str
    working: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    hours: float = 0
    notes: str = ""
    updated_at: Optional[str] = field(default=None, compare=False)

    @classmethod
    def create(
            cls,
            date: str,
            working: bool,
            start_time: Optional[str] = None,
            end_time: Optional[str] = None,
            notes: Optional[str] = None,
            updated_at: Optional[str] = None,
    ) -> "DayEntry":
        date_str = parse_date(date).strftime(DATE_STRING_MASK)
        if not working:
            if start_time or end_time:
                _log.debug(f"Day off on {date_str}: dropping time marks {time_to_str([start_time, end_time])}")
            return cls(date_str, False, None, None, 0, notes or "", updated_at)
        start = normalize_time(start_time) if start_time else None
        end = normalize_time(end_time) if end_time else None
        return cls(date_str, True, start, end, calculate_hours(start, end), notes or "", updated_at)

    @classmethod
    def blank(cls, date_instance: dt.date) -> "DayEntry":
        return cls(date_instance.strftime(DATE_STRING_MASK))

    def as_dict(self) -> RowDictData:
        return {
            "date": self.date,
            "working": self.working,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "hours": self.hours,
            "notes": self.notes,
        }

    def as_db(self, user_id: int) -> RowDictData:
        return {
            "user_id": user_id,
            "date": self.date,
            "month_key": self.date[:7],
            "working": self.working,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "hours": self.hours,
            "notes": self.notes,
            "updated_at": self.updated_at,
        }

    def __str__(self) -> str:
        if not self.working:
            return f"{self.date} off {self.notes}".rstrip()
        return f"{self.date} {time_to_str([self.start_time, self.end_time])} {self.hours}h {self.notes}".rstrip()


MonthSchedule = Dict[str, DayEntry]


@dataclass(frozen=True)
class WorkRecord:
    id: int
    date: str
    start_time: Optional[str]
    end_time: Optional[str]
    hours: int
    minutes: int
    total_minutes: int
    notes: str = ""
    recorded_at: Optional[str] = None

    @classmethod
    def from_day_entry(cls, entry: DayEntry) -> "WorkRecord":
        assert entry.working, f"Only working days project to work records: {entry}"
        hours, minutes, total = split_duration(entry.start_time, entry.end_time)
        return cls(
            id=parse_date(entry.date).toordinal(),
            date=entry.date,
            start_time=entry.start_time,
            end_time=entry.end_time,
            hours=hours,
            minutes=minutes,
            total_minutes=total,
            notes=entry.notes,
            recorded_at=entry.updated_at,
        )

    def as_dict(self) -> RowDictData:
        return {
            "id": self.id,
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "hours": self.hours,
            "minutes": self.minutes,
            "totalMinutes": self.total_minutes,
            "notes": self.notes,
            "recordedAt": self.recorded_at,
        }


@dataclass(frozen=True)
class TemplateSlot:
    working: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    notes: str = ""


WeeklyTemplate = Dict[int, TemplateSlot]
