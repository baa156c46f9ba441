import logging
from typing import Any, Mapping, Optional, Union

from shifttracker.constants import DayEntry, MonthSchedule, TemplateSlot, WeeklyTemplate
from shifttracker.errors import InvalidDate, MonthNotFound
from shifttracker.utils.utils import parse_date, sunday_based_weekday

_log = logging.getLogger(__name__)


def check_template(template: WeeklyTemplate) -> WeeklyTemplate:
    for weekday in template:
        if not isinstance(weekday, int) or not 0 <= weekday <= 6:
            raise InvalidDate(f"Weekday index must be 0 (Sunday) to 6 (Saturday): {weekday!r}")
    return template


def template_from_dict(data: Mapping[Union[int, str], Union[TemplateSlot, Mapping[str, Any]]]) -> WeeklyTemplate:
    """Builds a template from JSON-shaped input: '1': {'working': true, 'startTime': '09:00', ...}."""
    if not isinstance(data, Mapping):
        raise InvalidDate(f"Template must map weekday indexes to slots: {data!r}")
    template: WeeklyTemplate = {}
    for key, slot in data.items():
        try:
            weekday = int(key)
        except (TypeError, ValueError) as e:
            raise InvalidDate(f"Weekday index must be an integer: {key!r}") from e
        if not isinstance(slot, (TemplateSlot, Mapping)):
            raise InvalidDate(f"Template slot for weekday {weekday} must be an object: {slot!r}")
        if not isinstance(slot, TemplateSlot):
            slot = TemplateSlot(
                working=bool(slot.get("working", False)),
                start_time=slot.get("startTime", slot.get("start")),
                end_time=slot.get("endTime", slot.get("end")),
                notes=slot.get("notes") or "",
            )
        template[weekday] = slot
    return check_template(template)


def apply_template(
        schedule: Optional[MonthSchedule], template: WeeklyTemplate, updated_at: Optional[str] = None
) -> MonthSchedule:
    if schedule is None:
        raise MonthNotFound("Template can only be applied to an initialized month")
    check_template(template)
    updated = dict(schedule)
    for date_str in schedule:
        slot = template.get(sunday_based_weekday(parse_date(date_str)))
        if slot is None:
            continue
        updated[date_str] = DayEntry.create(
            date_str, slot.working, slot.start_time, slot.end_time, slot.notes, updated_at=updated_at
        )
    _log.debug(f"Template for weekdays {sorted(template)} applied to {len(schedule)} days")
    return updated
