from __future__ import annotations

import datetime as dt
import json
import logging
import os
from typing import Any, Callable, Dict, Mapping, Optional, Union, TYPE_CHECKING

from dataclasses import dataclass

from shifttracker.constants import (
    CONFIG_FILE_PATH,
    DATE_STRING_MASK,
    DEFAULT_DB_PATH,
    LOG_FILE_PATH,
    MonthSchedule,
    TemplateSlot,
    WorkRecord,
)
from shifttracker.db.database_interface import InMemoryDbInterface, ShiftSqliteDbInterface
from shifttracker.db.models import create_sqlite_engine
from shifttracker.errors import InvalidDate, InvalidTimeFormat, ShiftTrackerError, StorageUnavailable
from shifttracker.parser import (
    ApplyTemplateIntent,
    NoMatch,
    RecordHoursIntent,
    SetDayIntent,
    StatsIntent,
    parse_command,
)
from shifttracker.schedule import Clock, ScheduleStore, UserId
from shifttracker.stats import filter_by_period, summarize, to_period
from shifttracker.template import template_from_dict
from shifttracker.utils.utils import month_key

if TYPE_CHECKING:
    from shifttracker.db.database_interface import DbInterface

_log = logging.getLogger(__name__)

AppConfig = Dict[str, Union[int, str]]
RawTemplate = Mapping[Union[int, str], Union[TemplateSlot, Mapping[str, Any]]]

DEFAULT_APP_CONFIG: AppConfig = {
    "storage": "sqlite",
    "db_path": DEFAULT_DB_PATH,
    "log_file": LOG_FILE_PATH,
    "log_level": "DEBUG",
}


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    config = dict(DEFAULT_APP_CONFIG)
    config_path = config_path or CONFIG_FILE_PATH
    if not os.path.isfile(config_path):
        _log.debug(f"Config file not found under '{config_path}', defaults will be used")
        return config
    with open(config_path, encoding="utf8") as json_config:
        loaded = json.load(json_config)
    unknown = set(loaded) - set(DEFAULT_APP_CONFIG)
    if unknown:
        _log.warning(f"Unknown config keys ignored: {sorted(unknown)}")
    config.update({k: v for k, v in loaded.items() if k in DEFAULT_APP_CONFIG})
    return config


def create_backend(app_config: AppConfig) -> DbInterface:
    storage = app_config.get("storage", "sqlite")
    if storage == "memory":
        return InMemoryDbInterface()
    assert storage == "sqlite", f"Unsupported storage: {storage!r}"
    return ShiftSqliteDbInterface(create_sqlite_engine(str(app_config["db_path"])))


@dataclass(frozen=True)
class ErrorInfo:
    code: str
    message: str


@dataclass(frozen=True)
class Result:
    success: bool
    data: Any = None
    error: Optional[ErrorInfo] = None

    @classmethod
    def ok(cls, data: Any) -> "Result":
        return cls(True, data)

    @classmethod
    def fail(cls, exc: ShiftTrackerError) -> "Result":
        return cls(False, error=ErrorInfo(exc.code, str(exc) or exc.code))

    def as_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        assert self.error is not None
        return {"success": False, "error": {"code": self.error.code, "message": self.error.message}}


def month_payload(key: str, schedule: MonthSchedule) -> Dict[str, Any]:
    return {
        "monthKey": key,
        "days": {date_str: entry.as_dict() for date_str, entry in sorted(schedule.items())},
        "stats": ScheduleStore.compute_month_stats(schedule),
    }


class App:
    """Entry points for the web and chat layers. Failures come back as Result, never as exceptions."""

    def __init__(self, *, store: ScheduleStore, clock: Clock = dt.datetime.now) -> None:
        self._store = store
        self._clock = clock

    @classmethod
    def from_config(cls, app_config: AppConfig, clock: Clock = dt.datetime.now) -> "App":
        return cls(store=ScheduleStore(create_backend(app_config), clock=clock), clock=clock)

    def _today(self) -> dt.date:
        return self._clock().date()

    def _run(self, operation: str, action: Callable[[], Any]) -> Result:
        try:
            return Result.ok(action())
        except StorageUnavailable as e:
            _log.exception(f"{operation} failed, storage unavailable")
            return Result.fail(e)
        except ShiftTrackerError as e:
            _log.warning(f"{operation} rejected: {e.code} {e}")
            return Result.fail(e)

    def get_month(self, user_id: UserId, year: int, month: int) -> Result:
        def action() -> Dict[str, Any]:
            schedule = self._store.get_or_create_month(user_id, year, month)
            return month_payload(month_key(year, month), schedule)

        return self._run("getMonth", action)

    def set_day(
            self,
            user_id: UserId,
            date: str,
            working: bool,
            start_time: Optional[str] = None,
            end_time: Optional[str] = None,
            notes: Optional[str] = None,
    ) -> Result:
        return self._run(
            "setDay", lambda: self._store.set_day(user_id, date, working, start_time, end_time, notes).as_dict()
        )

    def apply_template(self, user_id: UserId, key: str, template: RawTemplate) -> Result:
        def action() -> Dict[str, Any]:
            return month_payload(key, self._store.apply_template(user_id, key, template_from_dict(template)))

        return self._run("applyTemplate", action)

    def record_hours(
            self,
            user_id: UserId,
            date: Optional[str],
            start_time: Optional[str],
            end_time: Optional[str],
            notes: Optional[str] = None,
    ) -> Result:
        def action() -> Dict[str, Any]:
            if not date:
                raise InvalidDate("Date is required to record hours")
            if not start_time or not end_time:
                raise InvalidTimeFormat("Start and end time are required to record hours")
            entry = self._store.set_day(user_id, date, True, start_time, end_time, notes)
            return WorkRecord.from_day_entry(entry).as_dict()

        return self._run("recordHours", action)

    def delete_record(self, user_id: UserId, date: str) -> Result:
        return self._run("deleteRecord", lambda: self._store.reset_day(user_id, date).as_dict())

    def get_stats(self, user_id: UserId, period: str = "month") -> Result:
        def action() -> Dict[str, Any]:
            records = filter_by_period(self._store.records(user_id), to_period(period), self._today())
            return {**summarize(records), "records": [record.as_dict() for record in records]}

        return self._run("getStats", action)

    def handle_text(self, user_id: UserId, text: str) -> Optional[Result]:
        """Runs a chat command; None when the text is not a command."""
        try:
            intent = parse_command(text)
        except ShiftTrackerError as e:
            _log.warning(f"Command rejected: {e.code} {e}")
            return Result.fail(e)
        if isinstance(intent, NoMatch):
            return None
        if isinstance(intent, RecordHoursIntent):
            today = self._today().strftime(DATE_STRING_MASK)
            return self.record_hours(user_id, today, intent.start_time, intent.end_time, intent.notes)
        if isinstance(intent, StatsIntent):
            return self.get_stats(user_id, intent.period)
        if isinstance(intent, SetDayIntent):
            return self.set_day(
                user_id, intent.date, intent.working, intent.start_time, intent.end_time, intent.notes
            )
        assert isinstance(intent, ApplyTemplateIntent), f"Unhandled intent: {intent}"
        today = self._today()
        key = month_key(today.year, today.month)
        initialized = self.get_month(user_id, today.year, today.month)
        if not initialized.success:
            return initialized
        return self.apply_template(user_id, key, intent.template)
