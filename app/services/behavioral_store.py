"""
behavioral_store.py
───────────────────
The queryable store the scoring engine reads from and writes its snapshot to.

  BehavioralStore            — the protocol the engine depends on
  SqlAlchemyBehavioralStore  — PostgreSQL implementation (asyncpg)

Every query opens its own AsyncSession so that the factor calculators can
run concurrently without sharing a connection. Any driver / SQL failure is
re-raised as StoreError.

Date windows are half-open: start <= ts < end. Attendance is recorded as a
calendar date and is treated as midnight UTC of that day.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Protocol

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import StoreError
from app.models.behavior import (
    AthleteBenchmark,
    AthletePr,
    AthleteWellnessCheckin,
    BoxMembership,
    WodAttendance,
    WodFeedback,
)
from app.models.risk_score import AthleteRiskScore

logger = structlog.get_logger(__name__)

# ─── Table names ──────────────────────────────────────────────────
ATTENDANCE = "wod_attendance"
PRS = "athlete_prs"
BENCHMARKS = "athlete_benchmarks"
WELLNESS = "athlete_wellness_checkins"
FEEDBACK = "wod_feedback"
RISK_SCORES = "athlete_risk_scores"

# table -> (model, timestamp column used for window filters)
_BEHAVIOR_TABLES = {
    ATTENDANCE: (WodAttendance, "attendance_date"),
    PRS: (AthletePr, "achieved_at"),
    BENCHMARKS: (AthleteBenchmark, "achieved_at"),
    WELLNESS: (AthleteWellnessCheckin, "checkin_date"),
    FEEDBACK: (WodFeedback, "wod_date"),
}

_UPSERT_TABLES = {
    RISK_SCORES: AthleteRiskScore,
}

# Columns that are set on first insert and never rewritten by the upsert
_INSERT_ONLY_COLUMNS = {"id", "box_id", "created_at"}


@dataclass(frozen=True)
class DateRange:
    """
    Half-open interval start <= ts < end. SqlAlchemyBehavioralStore renders
    the same bounds as SQL filters; `in` applies them to a single timestamp.
    """
    start: datetime
    end: datetime

    def __contains__(self, ts: datetime) -> bool:
        return self.start <= ts < self.end


@dataclass(frozen=True)
class MembershipRecord:
    id: str
    box_id: str
    checkin_streak: int = 0


class BehavioralStore(Protocol):
    async def count_where(
        self,
        table: str,
        membership_id: str,
        date_range: DateRange,
        extra_filter: Optional[dict[str, Any]] = None,
    ) -> int: ...

    async def max_date_where(
        self,
        table: str,
        membership_id: str,
        date_range: Optional[DateRange] = None,
        extra_filter: Optional[dict[str, Any]] = None,
    ) -> Optional[datetime]: ...

    async def average_where(
        self,
        table: str,
        membership_id: str,
        date_range: DateRange,
        column: str,
    ) -> Optional[float]: ...

    async def upsert_by_key(self, table: str, key: str, values: dict[str, Any]) -> None: ...

    async def find_active_memberships_by_role(self, box_id: str, role: str) -> list[str]: ...

    async def find_membership(self, membership_id: str) -> Optional[MembershipRecord]: ...


# ─── Helpers ──────────────────────────────────────────────────────

def as_utc_datetime(value: date | datetime) -> datetime:
    """Dates become midnight UTC; naive datetimes are taken as UTC."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def first_date_on_or_after(ts: datetime) -> date:
    """Earliest calendar date whose midnight UTC is >= ts."""
    ts = as_utc_datetime(ts).astimezone(timezone.utc)
    d = ts.date()
    if ts.time() != time.min:
        d += timedelta(days=1)
    return d


def build_upsert_statement(table: str, key: str, values: dict[str, Any]):
    """
    INSERT ... ON CONFLICT (key) DO UPDATE SET <every computed column>.
    box_id / id / created_at are only written on first insert.
    """
    model = _UPSERT_TABLES.get(table)
    if model is None:
        raise ValueError(f"Table {table} does not support upsert")
    if key not in values:
        raise ValueError(f"Upsert values must include key column {key}")

    stmt = insert(model).values(**values)
    update_set = {
        col: stmt.excluded[col]
        for col in values
        if col != key and col not in _INSERT_ONLY_COLUMNS
    }
    return stmt.on_conflict_do_update(index_elements=[key], set_=update_set)


# ─── PostgreSQL implementation ────────────────────────────────────

class SqlAlchemyBehavioralStore:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _behavior_table(self, table: str):
        try:
            return _BEHAVIOR_TABLES[table]
        except KeyError:
            raise ValueError(f"Unknown behavioral table: {table}") from None

    def _window_filters(self, model, date_col: str, date_range: Optional[DateRange]) -> list:
        if date_range is None:
            return []
        column = getattr(model, date_col)
        if model is WodAttendance:
            return [
                column >= first_date_on_or_after(date_range.start),
                column < first_date_on_or_after(date_range.end),
            ]
        return [column >= date_range.start, column < date_range.end]

    def _where(self, table, membership_id, date_range, extra_filter):
        model, date_col = self._behavior_table(table)
        clauses = [model.membership_id == membership_id]
        clauses += self._window_filters(model, date_col, date_range)
        for column, value in (extra_filter or {}).items():
            clauses.append(getattr(model, column) == value)
        return model, date_col, clauses

    async def _scalar(self, operation: str, stmt):
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            logger.error("store_query_failed", operation=operation, error=str(e))
            raise StoreError(operation, str(e)) from e

    async def count_where(self, table, membership_id, date_range, extra_filter=None) -> int:
        model, _, clauses = self._where(table, membership_id, date_range, extra_filter)
        stmt = select(func.count()).select_from(model).where(*clauses)
        return int(await self._scalar(f"count:{table}", stmt) or 0)

    async def max_date_where(self, table, membership_id, date_range=None, extra_filter=None):
        model, date_col, clauses = self._where(table, membership_id, date_range, extra_filter)
        stmt = select(func.max(getattr(model, date_col))).where(*clauses)
        value = await self._scalar(f"max_date:{table}", stmt)
        return as_utc_datetime(value) if value is not None else None

    async def average_where(self, table, membership_id, date_range, column) -> Optional[float]:
        model, _, clauses = self._where(table, membership_id, date_range, None)
        stmt = select(func.avg(getattr(model, column))).where(*clauses)
        value = await self._scalar(f"avg:{table}.{column}", stmt)
        return float(value) if value is not None else None

    async def upsert_by_key(self, table, key, values) -> None:
        stmt = build_upsert_statement(table, key, values)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(stmt)
        except (SQLAlchemyError, OSError) as e:
            logger.error("store_upsert_failed", table=table, key=values.get(key), error=str(e))
            raise StoreError(f"upsert:{table}", str(e)) from e

    async def find_active_memberships_by_role(self, box_id, role) -> list[str]:
        stmt = (
            select(BoxMembership.id)
            .where(
                BoxMembership.box_id == box_id,
                BoxMembership.is_active.is_(True),
                BoxMembership.role == role,
            )
            .order_by(BoxMembership.joined_at, BoxMembership.id)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [str(row) for row in result.scalars().all()]
        except (SQLAlchemyError, OSError) as e:
            logger.error("store_query_failed", operation="find_active_memberships", error=str(e))
            raise StoreError("find_active_memberships", str(e)) from e

    async def find_membership(self, membership_id) -> Optional[MembershipRecord]:
        try:
            async with self._session_factory() as session:
                row = await session.get(BoxMembership, membership_id)
        except (SQLAlchemyError, OSError) as e:
            logger.error("store_query_failed", operation="find_membership", error=str(e))
            raise StoreError("find_membership", str(e)) from e

        if row is None:
            return None
        return MembershipRecord(
            id=row.id,
            box_id=row.box_id,
            checkin_streak=int(row.checkin_streak or 0),
        )
