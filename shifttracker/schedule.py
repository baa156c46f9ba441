from __future__ import annotations

import datetime as dt
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Generator, List, Optional, Union, TYPE_CHECKING

from shifttracker.constants import DATE_STRING_MASK, DayEntry, MonthSchedule, WeeklyTemplate, WorkRecord
from shifttracker.errors import MissingUser, MonthNotFound
from shifttracker.stats import Summary, month_stats
from shifttracker.template import apply_template
from shifttracker.utils.utils import month_dates, month_key, parse_date, parse_month_key

if TYPE_CHECKING:
    from shifttracker.db.database_interface import DbInterface

_log = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]
UserId = Union[int, str, None]


def check_user(user_id: UserId) -> int:
    if user_id is None or isinstance(user_id, bool) or str(user_id).strip() == "":
        raise MissingUser("User identifier is required")
    try:
        uid = int(str(user_id).strip())
    except ValueError as e:
        raise MissingUser(f"User identifier must be numeric: {user_id!r}") from e
    if uid <= 0:
        raise MissingUser(f"User identifier must be positive: {user_id!r}")
    return uid


class ScheduleStore:
    """Per-user monthly schedules over an injected backend.

    Every month a user touches is kept dense: one entry per calendar day.
    Writes are last-write-wins; read-modify-write sequences of one user are
    serialized by a per-user lock.
    """

    def __init__(self, db_if: DbInterface, clock: Clock = dt.datetime.now) -> None:
        self._db_if = db_if
        self._clock = clock
        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _user_lock(self, user_id: int) -> Generator[None, None, None]:
        with self._locks_guard:
            lock = self._locks.setdefault(user_id, threading.Lock())
        with lock:
            yield

    def _now(self) -> str:
        return self._clock().isoformat(timespec="seconds")

    def _get_or_create_month(self, user_id: int, year: int, month: int) -> MonthSchedule:
        key = month_key(year, month)
        schedule = self._db_if.read_month(user_id, key)
        if schedule is not None:
            return schedule
        entries = [DayEntry.blank(d) for d in month_dates(year, month)]
        self._db_if.write_days(user_id, entries)
        _log.debug(f"Month {key} created for user {user_id} with {len(entries)} days")
        return {entry.date: entry for entry in entries}

    def get_or_create_month(self, user_id: UserId, year: int, month: int) -> MonthSchedule:
        uid = check_user(user_id)
        with self._user_lock(uid):
            return self._get_or_create_month(uid, year, month)

    def get_month(self, user_id: UserId, key: str) -> MonthSchedule:
        uid = check_user(user_id)
        parse_month_key(key)
        schedule = self._db_if.read_month(uid, key)
        if schedule is None:
            raise MonthNotFound(f"Month {key} is not initialized for user {uid}")
        return schedule

    def set_day(
            self,
            user_id: UserId,
            date: Union[str, dt.date],
            working: bool,
            start_time: Optional[str] = None,
            end_time: Optional[str] = None,
            notes: Optional[str] = None,
    ) -> DayEntry:
        uid = check_user(user_id)
        day = parse_date(date)
        entry = DayEntry.create(
            day.strftime(DATE_STRING_MASK), working, start_time, end_time, notes, updated_at=self._now()
        )
        with self._user_lock(uid):
            existing = self._get_or_create_month(uid, day.year, day.month)[entry.date]
            if existing.working and existing != entry:
                _log.warning(f"User {uid}: '{existing}' will be replaced with '{entry}'")
            self._db_if.write_days(uid, [entry])
        _log.debug(f"User {uid}: day stored '{entry}'")
        return entry

    def reset_day(self, user_id: UserId, date: Union[str, dt.date]) -> DayEntry:
        return self.set_day(user_id, date, working=False)

    def apply_template(self, user_id: UserId, key: str, template: WeeklyTemplate) -> MonthSchedule:
        uid = check_user(user_id)
        parse_month_key(key)
        with self._user_lock(uid):
            schedule = self._db_if.read_month(uid, key)
            updated = apply_template(schedule, template, updated_at=self._now())
            changed = [entry for date_str, entry in updated.items() if schedule[date_str] is not entry]
            self._db_if.write_days(uid, changed)
        _log.debug(f"User {uid}: template rewrote {len(changed)} days of {key}")
        return updated

    def list_months(self, user_id: UserId) -> List[str]:
        return self._db_if.list_month_keys(check_user(user_id))

    def records(self, user_id: UserId) -> List[WorkRecord]:
        """Work records are the working days of every month, oldest first."""
        uid = check_user(user_id)
        records: List[WorkRecord] = []
        for key in self._db_if.list_month_keys(uid):
            schedule = self._db_if.read_month(uid, key) or {}
            records.extend(WorkRecord.from_day_entry(e) for _, e in sorted(schedule.items()) if e.working)
        return records

    @staticmethod
    def compute_month_stats(schedule: MonthSchedule) -> Summary:
        return month_stats(schedule)
