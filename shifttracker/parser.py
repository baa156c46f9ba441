"""Free-text chat commands.

Recognized forms, tried in this order (first match wins):

    /stats [week|month|year|all]       worked-hours summary
    2024-05-20 09:00 18:00 [notes]     working day on a date
    2024-05-22 выходной [notes]        day off on a date
    пн 09:00 18:00                     weekly template, one weekday per line
    сб выходной
    09:00 18:30 [notes]                hours worked today

Anything else is ordinary chat and yields NoMatch.
"""
import logging
import re
from typing import Callable, List, Optional, Union

from dataclasses import dataclass, field

from shifttracker.constants import (
    DATE_PATTERN,
    DAY_OFF_LABEL,
    DAY_OFF_PATTERN,
    TIME_PATTERN,
    WEEKDAY_ABBREVIATIONS,
    TemplateSlot,
    WeeklyTemplate,
)
from shifttracker.errors import DuplicateDateInTemplate
from shifttracker.utils.utils import normalize_time, parse_date

_log = logging.getLogger(__name__)

WEEKDAY_PATTERN = "|".join(WEEKDAY_ABBREVIATIONS)
DATED_TIMES_RE = re.compile(rf"^({DATE_PATTERN})\s+({TIME_PATTERN})\s+({TIME_PATTERN})(?:\s+(.+))?$")
DATED_DAY_OFF_RE = re.compile(rf"^({DATE_PATTERN})\s+(?:{DAY_OFF_PATTERN})(?:\s+(.+))?$", re.IGNORECASE)
TEMPLATE_TIMES_RE = re.compile(rf"^({WEEKDAY_PATTERN})\s+({TIME_PATTERN})\s+({TIME_PATTERN})$", re.IGNORECASE)
TEMPLATE_DAY_OFF_RE = re.compile(rf"^({WEEKDAY_PATTERN})\s+(?:{DAY_OFF_PATTERN})$", re.IGNORECASE)
TIMES_RE = re.compile(rf"^({TIME_PATTERN})\s+({TIME_PATTERN})(?:\s+(.+))?$")
STATS_RE = re.compile(r"^/stats(?:\s+(week|month|year|all))?$", re.IGNORECASE)


@dataclass(frozen=True)
class RecordHoursIntent:
    start_time: str
    end_time: str
    notes: str = ""


@dataclass(frozen=True)
class SetDayIntent:
    date: str
    working: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    notes: str = ""


@dataclass(frozen=True)
class ApplyTemplateIntent:
    template: WeeklyTemplate = field(default_factory=dict)


@dataclass(frozen=True)
class StatsIntent:
    period: str = "month"


@dataclass(frozen=True)
class NoMatch:
    text: str


Intent = Union[RecordHoursIntent, SetDayIntent, ApplyTemplateIntent, StatsIntent]
Matcher = Callable[[str], Optional[Intent]]


def match_dated_times(text: str) -> Optional[Intent]:
    found = DATED_TIMES_RE.match(text)
    if found is None:
        return None
    date_str, start, end, notes = found.groups()
    return SetDayIntent(
        date=parse_date(date_str).isoformat(),
        working=True,
        start_time=normalize_time(start),
        end_time=normalize_time(end),
        notes=(notes or "").strip(),
    )


def match_dated_day_off(text: str) -> Optional[Intent]:
    found = DATED_DAY_OFF_RE.match(text)
    if found is None:
        return None
    date_str, notes = found.groups()
    notes = (notes or "").strip() or DAY_OFF_LABEL
    return SetDayIntent(date=parse_date(date_str).isoformat(), working=False, notes=notes)


def match_weekly_template(text: str) -> Optional[Intent]:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return None
    template: WeeklyTemplate = {}
    for line in lines:
        times = TEMPLATE_TIMES_RE.match(line)
        day_off = TEMPLATE_DAY_OFF_RE.match(line) if times is None else None
        if times is None and day_off is None:
            return None
        weekday = WEEKDAY_ABBREVIATIONS[(times or day_off).group(1).lower()]
        if weekday in template:
            raise DuplicateDateInTemplate(f"Weekday '{line.split()[0]}' appears more than once in the template")
        if times is not None:
            template[weekday] = TemplateSlot(True, normalize_time(times.group(2)), normalize_time(times.group(3)))
        else:
            template[weekday] = TemplateSlot(False, notes=DAY_OFF_LABEL)
    return ApplyTemplateIntent(template=template)


def match_stats(text: str) -> Optional[Intent]:
    found = STATS_RE.match(text)
    if found is None:
        return None
    return StatsIntent((found.group(1) or "month").lower())


def match_times(text: str) -> Optional[Intent]:
    found = TIMES_RE.match(text)
    if found is None:
        return None
    start, end, notes = found.groups()
    return RecordHoursIntent(normalize_time(start), normalize_time(end), (notes or "").strip())


MATCHERS: List[Matcher] = [
    match_stats,
    match_dated_times,
    match_dated_day_off,
    match_weekly_template,
    match_times,
]


def parse_command(text: str) -> Union[Intent, NoMatch]:
    """Raises InvalidTimeFormat or InvalidDate when a command matches but carries impossible values."""
    stripped = (text or "").strip()
    for matcher in MATCHERS:
        intent = matcher(stripped)
        if intent is not None:
            _log.debug(f"'{stripped}' matched by {matcher.__name__}: {intent}")
            return intent
    return NoMatch(stripped)
