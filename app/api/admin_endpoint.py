"""
Admin API — batch job triggers.

  POST /v1/admin/boxes/{box_id}/recalculate-risk-scores
    → Run the box-wide recalculation on demand (normally queued nightly)
"""
from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import get_risk_score_service
from app.schemas.risk_score import BatchResult
from app.services.risk_score_service import RiskScoreService

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/admin", tags=["admin"])


class RefreshResponse(BaseModel):
    status: str
    message: str
    job_result: Optional[BatchResult] = None


@router.post(
    "/boxes/{box_id}/recalculate-risk-scores",
    response_model=RefreshResponse,
    summary="Recalculate churn risk for every active athlete in a box",
    description=(
        "Runs the box risk score batch on demand. Memberships are processed "
        "one at a time; individual failures are reported in job_result and "
        "never abort the batch."
    ),
)
async def trigger_box_recalculation(
    box_id: str,
    service: RiskScoreService = Depends(get_risk_score_service),
) -> RefreshResponse:
    logger.info("box_risk_recalculation_triggered", box_id=box_id)

    result = await service.calculate_box_risk_scores(box_id)

    if result.error:
        status = "error"
    elif result.failed:
        status = "partial"
    else:
        status = "success"

    return RefreshResponse(
        status=status,
        message=(
            f"{result.successful}/{result.total} memberships recalculated, "
            f"{result.failed} failed"
        ),
        job_result=result,
    )
