import logging
from contextlib import contextmanager
from typing import Callable, ContextManager, Dict, Generator, List, Optional, Protocol

from sqlalchemy import Engine, orm
from sqlalchemy.orm import Session

import shifttracker.db.models as m
from shifttracker import constants as c
from shifttracker.errors import StorageUnavailable

_log = logging.getLogger(__name__)

UserMonths = Dict[str, c.MonthSchedule]


class DbError(StorageUnavailable):
    pass


class DbSessionError(DbError):
    pass


class DbReadError(DbError):
    pass


class DbInsertError(DbError):
    pass


@contextmanager
def session_scope(engine: Engine) -> Generator[Session, None, None]:
    """Provides a transactional scope around a series of operations."""
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception as e:
        _log.exception("Session error")
        session.rollback()
        raise DbSessionError from e
    finally:
        session.close()


class DbInterface(Protocol):
    def read_month(self, user_id: int, month_key: str) -> Optional[c.MonthSchedule]:
        pass

    def write_days(self, user_id: int, entries: List[c.DayEntry]) -> None:
        pass

    def list_month_keys(self, user_id: int) -> List[str]:
        pass


class InMemoryDbInterface:
    """Volatile backend over an injected user -> month key -> schedule map."""

    def __init__(self, storage: Optional[Dict[int, UserMonths]] = None) -> None:
        self._storage: Dict[int, UserMonths] = storage if storage is not None else {}

    def read_month(self, user_id: int, month_key: str) -> Optional[c.MonthSchedule]:
        month = self._storage.get(user_id, {}).get(month_key)
        return dict(month) if month is not None else None

    def write_days(self, user_id: int, entries: List[c.DayEntry]) -> None:
        user_months = self._storage.setdefault(user_id, {})
        for entry in entries:
            user_months.setdefault(entry.date[:7], {})[entry.date] = entry

    def list_month_keys(self, user_id: int) -> List[str]:
        return sorted(self._storage.get(user_id, {}))


class ShiftSqliteDbInterface:
    def __init__(self, engine: Engine) -> None:
        self._engine: Engine = engine
        self._session_scope: Callable[[Engine], ContextManager[orm.Session]] = session_scope

    def read_month(self, user_id: int, month_key: str) -> Optional[c.MonthSchedule]:
        table = m.DayEntryRow
        try:
            with self._session_scope(self._engine) as s:
                rows = (
                    s.query(table)
                    .where(table.user_id == user_id, table.month_key == month_key)
                    .order_by(table.date)
                    .all()
                )
                return {row.date: row.as_day_entry() for row in rows} if rows else None
        except Exception as e:
            _log.exception("Failed to read from database")
            raise DbReadError from e

    def write_days(self, user_id: int, entries: List[c.DayEntry]) -> None:
        try:
            with self._session_scope(self._engine) as s:
                for entry in entries:
                    row = s.merge(m.DayEntryRow(**entry.as_db(user_id)))
                    _log.debug(f"Merged row: {row.as_json()}")
        except Exception as e:
            _log.exception("Failed to write to database")
            raise DbInsertError from e

    def list_month_keys(self, user_id: int) -> List[str]:
        table = m.DayEntryRow
        try:
            with self._session_scope(self._engine) as s:
                rows = s.query(table.month_key).where(table.user_id == user_id).distinct().all()
                return sorted(row[0] for row in rows)
        except Exception as e:
            _log.exception("Failed to read from database")
            raise DbReadError from e
