"""
/v1/risk-scores

GET  /{membership_id}            → latest stored snapshot (may be stale, see valid_until)
POST /{membership_id}/calculate  → recompute now, persist, return the new snapshot
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_risk_score_service
from app.core.errors import NotFoundError, StoreError
from app.models.database import get_db
from app.models.risk_score import AthleteRiskScore
from app.schemas.risk_score import RiskScoreSnapshot
from app.services.risk_score_service import RiskScoreService

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/risk-scores", tags=["risk-scores"])


@router.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "service": "churn-risk-engine"}


@router.get(
    "/{membership_id}",
    response_model=RiskScoreSnapshot,
    summary="Latest churn risk snapshot for a membership",
)
async def get_risk_score(
    membership_id: str,
    db: AsyncSession = Depends(get_db),
) -> RiskScoreSnapshot:
    stmt = select(AthleteRiskScore).where(AthleteRiskScore.membership_id == membership_id)
    result = await db.execute(stmt)
    row = result.scalar_one_or_none()

    if row is None:
        raise HTTPException(status_code=404, detail=f"No risk score for membership {membership_id}")
    return RiskScoreSnapshot.from_row(row)


@router.post(
    "/{membership_id}/calculate",
    response_model=RiskScoreSnapshot,
    summary="Recalculate and persist the churn risk snapshot for a membership",
)
async def calculate_risk_score(
    membership_id: str,
    service: RiskScoreService = Depends(get_risk_score_service),
) -> RiskScoreSnapshot:
    try:
        return await service.calculate_risk_score(membership_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Risk score store unavailable: {e}")
