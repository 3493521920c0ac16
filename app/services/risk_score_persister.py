"""
Writes the latest snapshot for a membership.

One upsert keyed on membership_id: every computed column is replaced,
valid_until is reset, nothing is kept from the previous run except
id / box_id / created_at. No history table.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from app.schemas.risk_score import RiskScoreSnapshot
from app.services.behavioral_store import RISK_SCORES, BehavioralStore

SNAPSHOT_KEY = "membership_id"


def snapshot_to_row(snapshot: RiskScoreSnapshot, written_at: datetime) -> dict[str, Any]:
    return {
        "membership_id": snapshot.membership_id,
        "box_id": snapshot.box_id,
        "overall_risk_score": snapshot.overall_risk_score,
        "risk_level": snapshot.risk_level.value,
        "churn_probability": snapshot.churn_probability,
        "attendance_score": snapshot.attendance_score,
        "performance_score": snapshot.performance_score,
        "engagement_score": snapshot.engagement_score,
        "wellness_score": snapshot.wellness_score,
        "attendance_trend": snapshot.attendance_trend,
        "performance_trend": snapshot.performance_trend,
        "engagement_trend": snapshot.engagement_trend,
        "wellness_trend": snapshot.wellness_trend,
        "days_since_last_visit": snapshot.days_since_last_visit,
        "days_since_last_checkin": snapshot.days_since_last_checkin,
        "days_since_last_pr": snapshot.days_since_last_pr,
        "factors": snapshot.factors.to_json(),
        "calculated_at": snapshot.calculated_at,
        "valid_until": snapshot.valid_until,
        "updated_at": written_at,
    }


async def persist_snapshot(store: BehavioralStore, snapshot: RiskScoreSnapshot, written_at: datetime) -> None:
    await store.upsert_by_key(RISK_SCORES, SNAPSHOT_KEY, snapshot_to_row(snapshot, written_at))
