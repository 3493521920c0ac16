"""
Pytest fixtures: an in-memory BehavioralStore and a fixed clock.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest

from app.core.errors import StoreError
from app.services.behavioral_store import ATTENDANCE, DateRange, MembershipRecord, as_utc_datetime

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class InMemoryStore:
    """
    Behaves like SqlAlchemyBehavioralStore over plain dicts.
    Memberships listed in `failing` raise StoreError on every read.
    """

    def __init__(self):
        # id -> (record, role, is_active)
        self.memberships: dict[str, tuple[MembershipRecord, str, bool]] = {}
        self.records: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.tables: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.upsert_calls = 0
        self.failing: set[str] = set()
        self.listing_fails = False
        self.read_log: list[str] = []

    # ── Seeding ──

    def add_membership(self, membership_id, box_id="box-1", role="athlete", is_active=True, checkin_streak=0):
        record = MembershipRecord(id=membership_id, box_id=box_id, checkin_streak=checkin_streak)
        self.memberships[membership_id] = (record, role, is_active)
        return record

    def add(self, table: str, membership_id: str, when: date | datetime, **columns):
        self.records[table].append({"membership_id": membership_id, "ts": as_utc_datetime(when), **columns})

    def attend(self, membership_id: str, day: date, status: str = "attended"):
        self.add(ATTENDANCE, membership_id, day, status=status)

    # ── BehavioralStore ──

    def _check(self, membership_id: str, operation: str):
        self.read_log.append(membership_id)
        if membership_id in self.failing:
            raise StoreError(operation, f"connection reset while reading {membership_id}")

    def _select(self, table, membership_id, date_range: Optional[DateRange], extra_filter):
        rows = [r for r in self.records[table] if r["membership_id"] == membership_id]
        if date_range is not None:
            rows = [r for r in rows if r["ts"] in date_range]
        for column, value in (extra_filter or {}).items():
            rows = [r for r in rows if r.get(column) == value]
        return rows

    async def count_where(self, table, membership_id, date_range, extra_filter=None) -> int:
        self._check(membership_id, f"count:{table}")
        return len(self._select(table, membership_id, date_range, extra_filter))

    async def max_date_where(self, table, membership_id, date_range=None, extra_filter=None):
        self._check(membership_id, f"max_date:{table}")
        rows = self._select(table, membership_id, date_range, extra_filter)
        return max((r["ts"] for r in rows), default=None)

    async def average_where(self, table, membership_id, date_range, column):
        self._check(membership_id, f"avg:{table}.{column}")
        values = [r[column] for r in self._select(table, membership_id, date_range, None)]
        return sum(values) / len(values) if values else None

    async def upsert_by_key(self, table, key, values) -> None:
        self.upsert_calls += 1
        existing = self.tables[table].get(values[key])
        row = dict(values)
        if existing is not None:
            row["box_id"] = existing["box_id"]
        self.tables[table][values[key]] = row

    async def find_active_memberships_by_role(self, box_id, role) -> list[str]:
        if self.listing_fails:
            raise StoreError("find_active_memberships", "database is starting up")
        return [
            record.id
            for record, record_role, active in self.memberships.values()
            if record.box_id == box_id and record_role == role and active
        ]

    async def find_membership(self, membership_id):
        self._check(membership_id, "find_membership")
        entry = self.memberships.get(membership_id)
        return entry[0] if entry else None


class RecordingPublisher:
    def __init__(self):
        self.events = []

    async def __call__(self, snapshot):
        self.events.append(snapshot)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def publisher():
    return RecordingPublisher()
