"""
Latest risk snapshot per membership — one row, replaced wholesale on every run.
Schema: public.athlete_risk_scores
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Index, Integer, JSON, Numeric, String,
)

from app.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AthleteRiskScore(Base):
    __tablename__ = "athlete_risk_scores"
    __table_args__ = (
        CheckConstraint(
            "overall_risk_score >= 0 AND overall_risk_score <= 100",
            name="overall_risk_score_range",
        ),
        CheckConstraint(
            "churn_probability >= 0 AND churn_probability <= 1",
            name="churn_probability_range",
        ),
        Index("athlete_risk_scores_box_risk_level_idx", "box_id", "risk_level"),
        Index("athlete_risk_scores_valid_until_idx", "valid_until"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    box_id = Column(String(36), nullable=False, index=True)
    membership_id = Column(String(36), nullable=False, unique=True)

    # ── Assessment ──
    overall_risk_score = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    risk_level = Column(String(10), nullable=False)
    churn_probability = Column(Numeric(5, 4, asdecimal=False), nullable=False)

    # ── Component scores (0-100) ──
    attendance_score = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    performance_score = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    engagement_score = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    wellness_score = Column(Numeric(5, 2, asdecimal=False), nullable=False)

    # ── Trends (% change vs comparison window, unbounded) ──
    attendance_trend = Column(Numeric(asdecimal=False), nullable=False)
    performance_trend = Column(Numeric(asdecimal=False), nullable=False)
    engagement_trend = Column(Numeric(asdecimal=False), nullable=False)
    wellness_trend = Column(Numeric(asdecimal=False), nullable=False)

    # ── Key metrics ──
    days_since_last_visit = Column(Integer, nullable=True)
    days_since_last_checkin = Column(Integer, nullable=True)
    days_since_last_pr = Column(Integer, nullable=True)

    # ── Factor breakdown for explainability ──
    factors = Column(JSON, nullable=False)

    # ── Metadata ──
    calculated_at = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<AthleteRiskScore {self.membership_id} level={self.risk_level} score={self.overall_risk_score}>"
