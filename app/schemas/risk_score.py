"""
Risk snapshot payloads.

Factor detail models serialise with camelCase keys: that is the shape stored
in athlete_risk_scores.factors and read by the dashboard.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ── Factor details ──

class _FactorDetail(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    score: int = Field(ge=0, le=100)
    trend: float = Field(description="% change vs comparison window, 2dp")


class AttendanceFactors(_FactorDetail):
    days_gap: int = Field(description="Days since last attended session in window; 999 if none")
    frequency: float = Field(description="Sessions per week")


class PerformanceFactors(_FactorDetail):
    pr_count: int
    benchmark_progress: int = Field(description="Benchmark results logged in window")


class EngagementFactors(_FactorDetail):
    checkin_streak: int
    feedback_frequency: float = Field(description="WOD feedback entries per week")


class WellnessFactors(_FactorDetail):
    average_energy: float
    average_readiness: float


class RiskFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    attendance: AttendanceFactors
    performance: PerformanceFactors
    engagement: EngagementFactors
    wellness: WellnessFactors

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class KeyMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    days_since_last_visit: Optional[int] = None
    days_since_last_checkin: Optional[int] = None
    days_since_last_pr: Optional[int] = None


# ── Snapshot ──

class RiskScoreSnapshot(BaseModel):
    """The latest risk assessment for one membership."""
    membership_id: str
    box_id: str

    # ── Primary outputs ──
    overall_risk_score: int = Field(ge=0, le=100, description="Weighted health score; higher is healthier")
    risk_level: RiskLevel
    churn_probability: float = Field(ge=0, le=1)

    # ── Components ──
    attendance_score: int
    performance_score: int
    engagement_score: int
    wellness_score: int

    attendance_trend: float
    performance_trend: float
    engagement_trend: float
    wellness_trend: float

    # ── Recency ──
    days_since_last_visit: Optional[int] = None
    days_since_last_checkin: Optional[int] = None
    days_since_last_pr: Optional[int] = None

    factors: RiskFactors

    # ── Metadata ──
    calculated_at: datetime
    valid_until: datetime

    @classmethod
    def from_row(cls, row) -> "RiskScoreSnapshot":
        return cls(
            membership_id=row.membership_id,
            box_id=row.box_id,
            overall_risk_score=row.overall_risk_score,
            risk_level=row.risk_level,
            churn_probability=row.churn_probability,
            attendance_score=row.attendance_score,
            performance_score=row.performance_score,
            engagement_score=row.engagement_score,
            wellness_score=row.wellness_score,
            attendance_trend=row.attendance_trend,
            performance_trend=row.performance_trend,
            engagement_trend=row.engagement_trend,
            wellness_trend=row.wellness_trend,
            days_since_last_visit=row.days_since_last_visit,
            days_since_last_checkin=row.days_since_last_checkin,
            days_since_last_pr=row.days_since_last_pr,
            factors=RiskFactors.model_validate(row.factors),
            calculated_at=row.calculated_at,
            valid_until=row.valid_until,
        )


# ── Batch tally ──

class MembershipOutcome(BaseModel):
    membership_id: str
    status: Literal["success", "error"]
    risk_level: Optional[RiskLevel] = None
    overall_risk_score: Optional[int] = None
    error: Optional[str] = None


class BatchResult(BaseModel):
    """Summary of a box (or explicit list) recalculation. Never raised, always returned."""
    box_id: Optional[str] = None
    total: int = 0
    successful: int = 0
    failed: int = 0
    outcomes: list[MembershipOutcome] = []
    error: Optional[str] = Field(None, description="Set when the candidate list itself could not be loaded")
    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def errors(self) -> list[MembershipOutcome]:
        return [o for o in self.outcomes if o.status == "error"]
