import json
import logging

from sqlalchemy import Boolean, Column, Engine, Float, Integer, Text, create_engine
from sqlalchemy.orm import DeclarativeBase

from shifttracker.constants import DayEntry, DEFAULT_DB_PATH

_log = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class DayEntryRow(Base):
    __tablename__ = "day_entries"
    user_id = Column(Integer, primary_key=True, nullable=False)
    date = Column(Text(10), primary_key=True, nullable=False)
    month_key = Column(Text(7), nullable=False, index=True)
    working = Column(Boolean, nullable=False, default=False)
    start_time = Column(Text(5), nullable=True)
    end_time = Column(Text(5), nullable=True)
    hours = Column(Float, nullable=False, default=0)
    notes = Column(Text(500), nullable=False, default="")
    updated_at = Column(Text(32), nullable=True)

    def as_day_entry(self) -> DayEntry:
        return DayEntry(
            date=self.date,
            working=bool(self.working),
            start_time=self.start_time,
            end_time=self.end_time,
            hours=self.hours,
            notes=self.notes or "",
            updated_at=self.updated_at,
        )

    def as_json(self) -> str:
        data = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        return json.dumps({"table": {self.__tablename__: data}}, ensure_ascii=False)


def create_sqlite_engine(db_path: str = DEFAULT_DB_PATH, echo: bool = False) -> Engine:
    engine = create_engine(f"sqlite:///{db_path}", echo=echo)
    Base.metadata.create_all(engine)
    _log.debug(f"Sqlite engine ready: {db_path}")
    return engine
