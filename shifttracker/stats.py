import calendar
import datetime as dt
import logging
from decimal import Decimal
from typing import Dict, List, Sequence, Union

from shifttracker.constants import MonthSchedule, Period, WorkRecord
from shifttracker.errors import InvalidPeriod
from shifttracker.utils.utils import check_year_month, parse_date, round_one_decimal

_log = logging.getLogger(__name__)

Summary = Dict[str, Union[int, float]]


def to_period(value: Union[str, Period]) -> Period:
    if isinstance(value, Period):
        return value
    try:
        return Period(str(value).strip().lower())
    except ValueError as e:
        raise InvalidPeriod(f"Unknown period {value!r}, expected one of {[p.value for p in Period]}") from e


def shift_months(date_instance: dt.date, months: int) -> dt.date:
    """Move by whole months, clamping to the last day of the target month."""
    index = date_instance.year * 12 + date_instance.month - 1 + months
    year, month = divmod(index, 12)
    month += 1
    day = min(date_instance.day, calendar.monthrange(year, month)[1])
    return dt.date(year, month, day)


def period_cutoff(period: Period, now: dt.date) -> dt.date:
    if period is Period.WEEK:
        return now - dt.timedelta(days=7)
    if period is Period.MONTH:
        return shift_months(now, -1)
    if period is Period.YEAR:
        return shift_months(now, -12)
    raise AssertionError(f"Period {period} has no cutoff")


def filter_by_period(
        records: Sequence[WorkRecord], period: Union[str, Period], now: Union[dt.date, dt.datetime]
) -> List[WorkRecord]:
    period = to_period(period)
    if period is Period.ALL:
        return list(records)
    if isinstance(now, dt.datetime):
        now = now.date()
    cutoff = period_cutoff(period, now)
    kept = [record for record in records if parse_date(record.date) >= cutoff]
    _log.debug(f"Period '{period.value}' from {cutoff}: kept {len(kept)} of {len(records)} records")
    return kept


def summarize(records: Sequence[WorkRecord]) -> Summary:
    total_minutes = sum(record.hours * 60 + record.minutes for record in records)
    count = len(records)
    return {
        "totalHours": total_minutes // 60,
        "totalRecords": count,
        "dailyAverage": round_one_decimal(Decimal(total_minutes) / 60 / count) if count else 0,
    }


def filter_by_month(records: Sequence[WorkRecord], year: int, month: int) -> List[WorkRecord]:
    year, month = check_year_month(year, month)
    prefix = f"{year:04d}-{month:02d}-"
    return [record for record in records if record.date.startswith(prefix)]


def month_stats(schedule: MonthSchedule) -> Summary:
    working_days = sum(1 for entry in schedule.values() if entry.working)
    total_hours = round_one_decimal(sum(entry.hours for entry in schedule.values()))
    # average is shown with the same one-decimal precision as the total
    return {
        "workingDays": working_days,
        "totalHours": total_hours,
        "averageHours": round_one_decimal(total_hours / working_days) if working_days else 0,
    }
