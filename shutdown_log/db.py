"""
Store abstraction for daily logs: a SQLAlchemy implementation (Postgres in
production, SQLite in tests) and an in-memory implementation for dev.
"""

from __future__ import annotations

import copy
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shutdown_log.errors import Conflict, StoreFailure
from shutdown_log.types import DailyLog, LogHistoryItem

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DbClient(Protocol):
    """Interface for daily log storage."""

    def find_log(self, user_id: str, date: str) -> Optional[DailyLog]:
        ...

    def create_log(self, user_id: str, date: str, log_data: dict) -> DailyLog:
        ...

    def get_log(self, log_id: str) -> Optional[DailyLog]:
        ...

    def update_log_data(
        self,
        log_id: str,
        log_data: dict,
        *,
        expected_revision: Optional[int] = None,
    ) -> Optional[DailyLog]:
        ...

    def list_log_summaries(self, user_id: str) -> list[LogHistoryItem]:
        ...


class InMemoryDbClient:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.logs: Dict[str, DailyLog] = {}

    def _copy(self, log: DailyLog) -> DailyLog:
        return copy.deepcopy(log)

    def find_log(self, user_id: str, date: str) -> Optional[DailyLog]:
        for log in self.logs.values():
            if log.user_id == user_id and log.date == date:
                return self._copy(log)
        return None

    def create_log(self, user_id: str, date: str, log_data: dict) -> DailyLog:
        existing = self.find_log(user_id, date)
        if existing:
            return existing
        now = _utcnow()
        log = DailyLog(
            id=uuid.uuid4().hex,
            user_id=user_id,
            date=date,
            log_data=copy.deepcopy(log_data),
            revision=1,
            created_at=now,
            updated_at=now,
        )
        self.logs[log.id] = log
        return self._copy(log)

    def get_log(self, log_id: str) -> Optional[DailyLog]:
        log = self.logs.get(log_id)
        return self._copy(log) if log else None

    def update_log_data(
        self,
        log_id: str,
        log_data: dict,
        *,
        expected_revision: Optional[int] = None,
    ) -> Optional[DailyLog]:
        log = self.logs.get(log_id)
        if not log:
            return None
        if expected_revision is not None and expected_revision != log.revision:
            raise Conflict(log_id, expected_revision, log.revision)
        log.log_data = copy.deepcopy(log_data)
        log.revision += 1
        log.updated_at = _utcnow()
        return self._copy(log)

    def list_log_summaries(self, user_id: str) -> list[LogHistoryItem]:
        owned = [log for log in self.logs.values() if log.user_id == user_id]
        owned.sort(key=lambda log: log.date, reverse=True)
        return [LogHistoryItem.from_log(log) for log in owned]

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.logs.clear()


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        engine_kwargs = {"future": True, "pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.Session()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Store operation failed")
            raise StoreFailure(str(exc)) from exc
        finally:
            session.close()

    def _to_daily_log(self, row: "DailyLogRow") -> DailyLog:
        return DailyLog(
            id=row.id,
            user_id=row.user_id,
            date=row.date,
            log_data=row.log_data,
            revision=row.revision,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def find_log(self, user_id: str, date: str) -> Optional[DailyLog]:
        with self._session() as session:
            stmt = select(DailyLogRow).where(
                DailyLogRow.user_id == user_id, DailyLogRow.date == date
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_daily_log(row) if row else None

    def create_log(self, user_id: str, date: str, log_data: dict) -> DailyLog:
        now = _utcnow()
        try:
            with self.Session() as session:
                row = DailyLogRow(
                    id=uuid.uuid4().hex,
                    user_id=user_id,
                    date=date,
                    log_data=log_data,
                    revision=1,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                return self._to_daily_log(row)
        except IntegrityError:
            # Another request created the row first; (user_id, date) is unique.
            logger.info("Log for %s on %s already exists, re-reading", user_id, date)
            existing = self.find_log(user_id, date)
            if existing is None:
                raise StoreFailure(f"could not create log for {date}")
            return existing
        except SQLAlchemyError as exc:
            logger.exception("Failed to create log for %s on %s", user_id, date)
            raise StoreFailure(str(exc)) from exc

    def get_log(self, log_id: str) -> Optional[DailyLog]:
        with self._session() as session:
            row = session.get(DailyLogRow, log_id)
            return self._to_daily_log(row) if row else None

    def update_log_data(
        self,
        log_id: str,
        log_data: dict,
        *,
        expected_revision: Optional[int] = None,
    ) -> Optional[DailyLog]:
        with self._session() as session:
            stmt = (
                update(DailyLogRow)
                .where(DailyLogRow.id == log_id)
                .values(
                    log_data=log_data,
                    revision=DailyLogRow.revision + 1,
                    updated_at=_utcnow(),
                )
            )
            if expected_revision is not None:
                stmt = stmt.where(DailyLogRow.revision == expected_revision)
            stmt = stmt.execution_options(synchronize_session=False)
            result = session.execute(stmt)
            if result.rowcount == 0:
                session.rollback()
                row = session.get(DailyLogRow, log_id)
                if row is None:
                    return None
                raise Conflict(log_id, expected_revision, row.revision)
            session.commit()
            row = session.get(DailyLogRow, log_id, populate_existing=True)
            return self._to_daily_log(row)

    def list_log_summaries(self, user_id: str) -> list[LogHistoryItem]:
        with self._session() as session:
            stmt = (
                select(DailyLogRow.id, DailyLogRow.date, DailyLogRow.log_data)
                .where(DailyLogRow.user_id == user_id)
                .order_by(DailyLogRow.date.desc())
            )
            return [
                LogHistoryItem.from_row(log_id, date, log_data)
                for log_id, date, log_data in session.execute(stmt)
            ]


Base = declarative_base()


class DailyLogRow(Base):
    __tablename__ = "daily_logs"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_logs_user_date"),
    )

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(String, nullable=False)
    log_data = Column(JSON, nullable=False)
    revision = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
