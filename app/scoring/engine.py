"""
Churn Risk Scoring Engine

Orchestrates, for one membership:
  1. The four factor calculators + key metrics (concurrently)
  2. Weighted overall score
  3. Risk level + churn probability
  4. Snapshot assembly (validity window stamped here)

Persistence and batch fan-out live in app.services.risk_score_service.
"""
from __future__ import annotations

import asyncio
import math
from datetime import datetime, timedelta

from app.schemas.risk_score import KeyMetrics, RiskFactors, RiskLevel, RiskScoreSnapshot
from app.scoring import key_metrics
from app.scoring.calculators import attendance, engagement, performance, wellness
from app.scoring.numeric import round_half_up, round_score
from app.scoring.window import AnalysisWindow
from app.services.behavioral_store import BehavioralStore, MembershipRecord


# ═══════════════════════════════════════════════════════════════
# Factor weights, must sum to 1.0
#   Attendance is the strongest churn predictor, performance the weakest.
# ═══════════════════════════════════════════════════════════════
FACTOR_WEIGHTS: dict[str, float] = {
    "attendance": 0.35,
    "engagement": 0.25,
    "wellness": 0.25,
    "performance": 0.15,
}
assert abs(sum(FACTOR_WEIGHTS.values()) - 1.0) < 1e-9, "Weights must sum to 1.0"


# ═══════════════════════════════════════════════════════════════
# Risk level thresholds (higher score = healthier member)
#   score >= 80  → LOW
#   score >= 60  → MEDIUM
#   score >= 40  → HIGH
#   score < 40   → CRITICAL
# ═══════════════════════════════════════════════════════════════
RISK_LEVEL_THRESHOLDS = [
    (80, RiskLevel.LOW),
    (60, RiskLevel.MEDIUM),
    (40, RiskLevel.HIGH),
]

# Logistic transform: centred on 50, one unit per 25 points
PROBABILITY_MIDPOINT = 50
PROBABILITY_SCALE = 25

SNAPSHOT_TTL = timedelta(hours=24)


def calculate_overall_score(factors: RiskFactors) -> int:
    return round_score(
        factors.attendance.score * FACTOR_WEIGHTS["attendance"]
        + factors.engagement.score * FACTOR_WEIGHTS["engagement"]
        + factors.wellness.score * FACTOR_WEIGHTS["wellness"]
        + factors.performance.score * FACTOR_WEIGHTS["performance"]
    )


def determine_risk_level(score: float) -> RiskLevel:
    for threshold, level in RISK_LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.CRITICAL


def calculate_churn_probability(score: float) -> float:
    normalized = (score - PROBABILITY_MIDPOINT) / PROBABILITY_SCALE
    return round_half_up(1 / (1 + math.exp(normalized)), 4)


async def join_all(*coros):
    """
    Await all coroutines concurrently; if one fails the siblings are
    cancelled and the first error propagates.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def calculate_all(
    store: BehavioralStore,
    membership: MembershipRecord,
    window: AnalysisWindow,
) -> tuple[RiskFactors, KeyMetrics]:
    att, perf, eng, well, metrics = await join_all(
        attendance.calculate(store, membership.id, window),
        performance.calculate(store, membership.id, window),
        engagement.calculate(store, membership, window),
        wellness.calculate(store, membership.id, window),
        key_metrics.calculate(store, membership.id, window.now),
    )
    return RiskFactors(attendance=att, performance=perf, engagement=eng, wellness=well), metrics


def assemble_snapshot(
    membership: MembershipRecord,
    factors: RiskFactors,
    metrics: KeyMetrics,
    calculated_at: datetime,
) -> RiskScoreSnapshot:
    overall = calculate_overall_score(factors)

    return RiskScoreSnapshot(
        membership_id=membership.id,
        box_id=membership.box_id,
        overall_risk_score=overall,
        risk_level=determine_risk_level(overall),
        churn_probability=calculate_churn_probability(overall),
        attendance_score=factors.attendance.score,
        performance_score=factors.performance.score,
        engagement_score=factors.engagement.score,
        wellness_score=factors.wellness.score,
        attendance_trend=factors.attendance.trend,
        performance_trend=factors.performance.trend,
        engagement_trend=factors.engagement.trend,
        wellness_trend=factors.wellness.trend,
        days_since_last_visit=metrics.days_since_last_visit,
        days_since_last_checkin=metrics.days_since_last_checkin,
        days_since_last_pr=metrics.days_since_last_pr,
        factors=factors,
        calculated_at=calculated_at,
        valid_until=calculated_at + SNAPSHOT_TTL,
    )


async def evaluate(
    store: BehavioralStore,
    membership: MembershipRecord,
    now: datetime,
) -> RiskScoreSnapshot:
    """Full scoring for one membership. Does not persist."""
    factors, metrics = await calculate_all(store, membership, AnalysisWindow.ending_at(now))
    return assemble_snapshot(membership, factors, metrics, now)
