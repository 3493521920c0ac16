"""
FastAPI dependency wiring for the scoring service.
"""
from __future__ import annotations

from app.models.database import get_session_factory
from app.services.behavioral_store import SqlAlchemyBehavioralStore
from app.services.risk_score_service import RiskScoreService


def get_risk_score_service() -> RiskScoreService:
    return RiskScoreService(SqlAlchemyBehavioralStore(get_session_factory()))
