import calendar
import datetime as dt
import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple, Union

from shifttracker.errors import InvalidDate, InvalidTimeFormat

_log = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_time(value: str) -> dt.time:
    match = TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidTimeFormat(f"Time must look like HH:MM: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidTimeFormat(f"Time of day out of range: {value!r}")
    return dt.time(hour, minute)


def to_minutes(value: str) -> int:
    t = parse_time(value)
    return t.hour * 60 + t.minute


def elapsed_minutes(start_time: str, end_time: str) -> int:
    start, end = to_minutes(start_time), to_minutes(end_time)
    if end < start:
        # shift crosses midnight
        end += MINUTES_PER_DAY
    return end - start


def round_one_decimal(value: Union[int, float, Decimal]) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def calculate_hours(start_time: Optional[str], end_time: Optional[str]) -> float:
    """Hours between two HH:MM wall-clock times, one decimal, wrapping past midnight."""
    if not start_time or not end_time:
        return 0
    return round_one_decimal(Decimal(elapsed_minutes(start_time, end_time)) / Decimal(60))


def split_duration(start_time: Optional[str], end_time: Optional[str]) -> Tuple[int, int, int]:
    if not start_time or not end_time:
        return 0, 0, 0
    total = elapsed_minutes(start_time, end_time)
    hours, minutes = divmod(total, 60)
    return hours, minutes, total


def normalize_time(value: str) -> str:
    return parse_time(value).strftime("%H:%M")


def parse_date(value: Union[str, dt.date]) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str) or not DATE_RE.match(value.strip()):
        raise InvalidDate(f"Date must look like YYYY-MM-DD: {value!r}")
    try:
        return dt.datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as e:
        raise InvalidDate(f"Not a calendar date: {value!r}") from e


def check_year_month(year: int, month: int) -> Tuple[int, int]:
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError) as e:
        raise InvalidDate(f"Year and month must be integers: {year!r}-{month!r}") from e
    if not 1 <= month <= 12:
        raise InvalidDate(f"Month out of range: {month}")
    if not dt.MINYEAR <= year <= dt.MAXYEAR:
        raise InvalidDate(f"Year out of range: {year}")
    return year, month


def month_key(year: int, month: int) -> str:
    year, month = check_year_month(year, month)
    return f"{year:04d}-{month:02d}"


def parse_month_key(value: str) -> Tuple[int, int]:
    match = MONTH_KEY_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidDate(f"Month key must look like YYYY-MM: {value!r}")
    return check_year_month(int(match.group(1)), int(match.group(2)))


def month_dates(year: int, month: int) -> List[dt.date]:
    year, month = check_year_month(year, month)
    days = calendar.monthrange(year, month)[1]
    return [dt.date(year, month, day) for day in range(1, days + 1)]


def sunday_based_weekday(date_instance: dt.date) -> int:
    """0 for Sunday through 6 for Saturday."""
    return date_instance.isoweekday() % 7


def time_to_str(time_instances: List[Optional[str]]) -> str:
    return " ".join(item or "--:--" for item in time_instances)
