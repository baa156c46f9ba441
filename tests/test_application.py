import io
import json
import logging
import sys
from datetime import datetime
from typing import Any, List, Optional

import pytest

from shifttracker.__main__ import main, read_messages
from shifttracker.application import App, Result, load_app_config
from shifttracker.constants import DayEntry, MonthSchedule
from shifttracker.db.database_interface import DbReadError, InMemoryDbInterface
from shifttracker.schedule import ScheduleStore

_log = logging.getLogger(__name__)

USER = 42
NOW = datetime(2024, 5, 20, 12, 0)


class UnavailableDb(InMemoryDbInterface):
    def read_month(self, user_id: int, month_key: str) -> Optional[MonthSchedule]:
        raise DbReadError("disk is gone")


def make_app() -> App:
    return App(store=ScheduleStore(InMemoryDbInterface(), clock=lambda: NOW), clock=lambda: NOW)


@pytest.fixture
def app() -> App:
    return make_app()


def error_code(result: Optional[Result]) -> str:
    assert result is not None and not result.success and result.error is not None
    return result.error.code


class TestGetMonth:
    def test_should_return_dense_month_with_stats(self, app: App) -> None:
        result = app.get_month(USER, 2024, 5)
        assert result.success
        assert result.data["monthKey"] == "2024-05"
        assert len(result.data["days"]) == 31
        assert result.data["days"]["2024-05-01"] == {
            "date": "2024-05-01", "working": False, "startTime": None, "endTime": None, "hours": 0, "notes": "",
        }
        assert result.data["stats"] == {"workingDays": 0, "totalHours": 0, "averageHours": 0}

    @pytest.mark.parametrize("user_id, code", [(None, "MISSING_USER"), ("", "MISSING_USER")])
    def test_should_fail_without_user(self, app: App, user_id: Optional[str], code: str) -> None:
        assert error_code(app.get_month(user_id, 2024, 5)) == code

    def test_should_fail_for_invalid_month(self, app: App) -> None:
        assert error_code(app.get_month(USER, 2024, 13)) == "INVALID_DATE"

    def test_should_report_storage_failure(self) -> None:
        app = App(store=ScheduleStore(UnavailableDb()), clock=lambda: NOW)
        assert error_code(app.get_month(USER, 2024, 5)) == "STORAGE_UNAVAILABLE"


class TestSetDayAndRecords:
    def test_should_store_working_day(self, app: App) -> None:
        result = app.set_day(USER, "2024-05-20", True, "09:00", "18:00")
        assert result.as_dict() == {
            "success": True,
            "data": {
                "date": "2024-05-20", "working": True, "startTime": "09:00", "endTime": "18:00", "hours": 9.0,
                "notes": "",
            },
        }

    def test_should_record_hours_as_work_record(self, app: App) -> None:
        result = app.record_hours(USER, "2024-05-19", "22:00", "06:30", "night")
        assert result.success
        assert result.data == {
            "id": 739025,
            "date": "2024-05-19",
            "startTime": "22:00",
            "endTime": "06:30",
            "hours": 8,
            "minutes": 30,
            "totalMinutes": 510,
            "notes": "night",
            "recordedAt": "2024-05-20T12:00:00",
        }

    @pytest.mark.parametrize(
        "date_str, start, end, code",
        [
            (None, "09:00", "18:00", "INVALID_DATE"),
            ("2024-05-20", None, "18:00", "INVALID_TIME_FORMAT"),
            ("2024-05-20", "09:00", "", "INVALID_TIME_FORMAT"),
            ("2024-05-20", "09:00", "18:99", "INVALID_TIME_FORMAT"),
        ],
    )
    def test_should_reject_incomplete_record(
            self, app: App, date_str: Optional[str], start: Optional[str], end: Optional[str], code: str
    ) -> None:
        assert error_code(app.record_hours(USER, date_str, start, end)) == code

    def test_should_delete_record_by_resetting_day(self, app: App) -> None:
        app.record_hours(USER, "2024-05-18", "09:00", "18:00")
        assert app.delete_record(USER, "2024-05-18").data["working"] is False
        assert app.get_stats(USER, "all").data["totalRecords"] == 0


class TestGetStats:
    def test_should_summarize_records_of_period(self, app: App) -> None:
        for date_str in ["2024-05-01", "2024-05-10", "2024-05-18"]:
            app.record_hours(USER, date_str, "09:00", "17:30")
        week = app.get_stats(USER, "week")
        assert week.success
        assert week.data["totalRecords"] == 1
        assert week.data["records"][0]["date"] == "2024-05-18"
        month = app.get_stats(USER)
        assert (month.data["totalHours"], month.data["totalRecords"], month.data["dailyAverage"]) == (25, 3, 8.5)

    def test_should_return_zeros_for_new_user(self, app: App) -> None:
        assert app.get_stats(USER, "all").data == {
            "totalHours": 0, "totalRecords": 0, "dailyAverage": 0, "records": [],
        }

    def test_should_fail_for_unknown_period(self, app: App) -> None:
        assert error_code(app.get_stats(USER, "decade")) == "INVALID_PERIOD"


class TestApplyTemplate:
    def test_should_fail_for_month_never_initialized(self, app: App) -> None:
        result = app.apply_template(USER, "2024-05", {1: {"working": True, "startTime": "09:00", "endTime": "18:00"}})
        assert error_code(result) == "MONTH_NOT_FOUND"

    def test_should_fill_mondays_of_initialized_month(self, app: App) -> None:
        app.get_month(USER, 2024, 5)
        result = app.apply_template(USER, "2024-05", {"1": {"working": True, "startTime": "09:00", "endTime": "18:00"}})
        assert result.success
        assert result.data["stats"] == {"workingDays": 4, "totalHours": 36.0, "averageHours": 9.0}

    @pytest.mark.parametrize("template", [{"1": None}, {"1": [1, 2]}, None])
    def test_should_fail_for_malformed_template(self, app: App, template: Any) -> None:
        app.get_month(USER, 2024, 5)
        assert error_code(app.apply_template(USER, "2024-05", template)) == "INVALID_DATE"


class TestHandleText:
    def test_should_set_day_off_from_chat(self, app: App) -> None:
        result = app.handle_text(USER, "2024-05-22 выходной")
        assert result is not None and result.success
        assert result.data == {
            "date": "2024-05-22", "working": False, "startTime": None, "endTime": None, "hours": 0,
            "notes": "Выходной",
        }

    def test_should_record_today_from_bare_times(self, app: App) -> None:
        result = app.handle_text(USER, "09:00 18:30 Работа над проектом")
        assert result is not None and result.success
        assert (result.data["date"], result.data["hours"], result.data["minutes"]) == ("2024-05-20", 9, 30)
        assert result.data["notes"] == "Работа над проектом"

    def test_should_apply_template_to_current_month(self, app: App) -> None:
        result = app.handle_text(USER, "пн 09:00 18:00\nсб выходной")
        assert result is not None and result.success
        days = result.data["days"]
        assert days["2024-05-06"]["hours"] == 9.0
        assert days["2024-05-04"]["working"] is False
        assert days["2024-05-04"]["notes"] == "Выходной"
        assert result.data["stats"]["workingDays"] == 4

    def test_should_answer_stats_command(self, app: App) -> None:
        app.handle_text(USER, "2024-05-19 09:00 18:00")
        result = app.handle_text(USER, "/stats week")
        assert result is not None and result.data["totalRecords"] == 1

    @pytest.mark.parametrize("text", ["привет", "как дела?", ""])
    def test_should_ignore_ordinary_chat(self, app: App, text: str) -> None:
        assert app.handle_text(USER, text) is None

    @pytest.mark.parametrize(
        "text, code",
        [
            ("25:00 18:00", "INVALID_TIME_FORMAT"),
            ("2024-02-30 выходной", "INVALID_DATE"),
            ("пн 09:00 18:00\nпн 10:00 18:00", "DUPLICATE_DATE_IN_TEMPLATE"),
        ],
    )
    def test_should_report_invalid_command(self, app: App, text: str, code: str) -> None:
        assert error_code(app.handle_text(USER, text)) == code

    def test_should_report_missing_user(self, app: App) -> None:
        assert error_code(app.handle_text(None, "09:00 18:00")) == "MISSING_USER"


class TestConfig:
    def test_should_use_defaults_when_config_file_is_missing(self, tmp_path) -> None:
        config = load_app_config(str(tmp_path / "missing.json"))
        assert config["storage"] == "sqlite"

    def test_should_merge_config_file_over_defaults(self, tmp_path) -> None:
        config_path = tmp_path / "config.json"
        config_path.write_text('{"storage": "memory", "unknown": 1}', encoding="utf8")
        config = load_app_config(str(config_path))
        assert config["storage"] == "memory"
        assert "unknown" not in config
        assert App.from_config(config).get_month(USER, 2024, 5).success


class TestReadMessages:
    @pytest.mark.parametrize(
        "lines, messages",
        [
            (["09:00 18:00\n"], ["09:00 18:00"]),
            (["пн 09:00 18:00\n", "сб выходной\n", "\n", "/stats\n"], ["пн 09:00 18:00\nсб выходной", "/stats"]),
            (["\n", "\n"], []),
        ],
    )
    def test_should_split_input_into_messages(self, lines: List[str], messages: List[str]) -> None:
        assert list(read_messages(lines)) == messages


def test_day_entry_dict_uses_wire_field_names() -> None:
    assert list(DayEntry("2024-05-20").as_dict()) == ["date", "working", "startTime", "endTime", "hours", "notes"]


class TestMain:
    def test_should_answer_commands_from_stdin(self, tmp_path, monkeypatch, capsys) -> None:
        config_path = tmp_path / "config.json"
        log_path = tmp_path / "shifttracker.log"
        config_path.write_text(
            json.dumps({"storage": "memory", "log_file": str(log_path), "log_level": "info"}), encoding="utf8"
        )
        monkeypatch.setattr(sys, "stdin", io.StringIO("привет\n\n2024-05-22 выходной\n"))
        handler = None
        try:
            assert main(["--user", "5", "--config", str(config_path)]) == 0
            handler = logging.getLogger().handlers[0]
        finally:
            if handler is not None:
                logging.getLogger().removeHandler(handler)
                handler.close()
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["data"]["notes"] == "Выходной"
        assert log_path.exists()
