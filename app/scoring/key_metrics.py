"""
Recency metrics for triage / display. Not part of the weighted score.

Looks at the full history (no window) and reports None when there is none,
unlike the attendance factor, which uses a 999-day sentinel.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from app.schemas.risk_score import KeyMetrics
from app.scoring.numeric import whole_days_between
from app.services.behavioral_store import ATTENDANCE, PRS, WELLNESS, BehavioralStore


def _days_since(now: datetime, last: Optional[datetime]) -> Optional[int]:
    return whole_days_between(now, last) if last is not None else None


async def calculate(store: BehavioralStore, membership_id: str, now: datetime) -> KeyMetrics:
    last_visit = await store.max_date_where(ATTENDANCE, membership_id, extra_filter={"status": "attended"})
    last_checkin = await store.max_date_where(WELLNESS, membership_id)
    last_pr = await store.max_date_where(PRS, membership_id)

    return KeyMetrics(
        days_since_last_visit=_days_since(now, last_visit),
        days_since_last_checkin=_days_since(now, last_checkin),
        days_since_last_pr=_days_since(now, last_pr),
    )
