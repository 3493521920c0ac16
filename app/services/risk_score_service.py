"""
risk_score_service.py
─────────────────────
Entry points used by the worker, the admin API and the scheduler.

  calculate_risk_score(membership_id)  — fail-fast, raises NotFoundError / StoreError
  calculate_box_risk_scores(box_id)    — every active athlete of a box, never raises
  calculate_many(membership_ids)       — explicit id list, never raises

Batches run memberships strictly one after another so a large box does not
saturate the shared database. Each membership is its own error boundary.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Optional

import structlog

from app.core.errors import NotFoundError, StoreError
from app.core.metrics import RISK_SCORE_BATCHES, RISK_SCORE_CALCULATIONS, RISK_SCORE_DURATION
from app.schemas.risk_score import BatchResult, MembershipOutcome, RiskScoreSnapshot
from app.scoring import engine
from app.services.behavioral_store import BehavioralStore
from app.services.event_publisher import publish_risk_score_event
from app.services.risk_score_persister import persist_snapshot

ATHLETE_ROLE = "athlete"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RiskScoreService:

    def __init__(
        self,
        store: BehavioralStore,
        logger=None,
        clock: Callable[[], datetime] = _utcnow,
        publish: Optional[Callable[[RiskScoreSnapshot], Awaitable[None]]] = publish_risk_score_event,
    ):
        self._store = store
        self._log = logger or structlog.get_logger(__name__)
        self._clock = clock
        self._publish = publish

    async def calculate_risk_score(self, membership_id: str) -> RiskScoreSnapshot:
        log = self._log.bind(membership_id=membership_id)
        log.info("risk_score_calculation_started")
        t0 = time.perf_counter()

        try:
            membership = await self._store.find_membership(membership_id)
            if membership is None:
                raise NotFoundError("Membership", membership_id)

            now = self._clock()
            snapshot = await engine.evaluate(self._store, membership, now)
            await persist_snapshot(self._store, snapshot, written_at=now)
        except NotFoundError:
            RISK_SCORE_CALCULATIONS.labels(status="not_found").inc()
            log.warning("risk_score_membership_not_found")
            raise
        except StoreError as e:
            RISK_SCORE_CALCULATIONS.labels(status="store_error").inc()
            log.error("risk_score_calculation_failed", error=str(e))
            raise
        except Exception as e:
            RISK_SCORE_CALCULATIONS.labels(status="error").inc()
            log.exception("risk_score_calculation_failed", error=str(e))
            raise

        elapsed = time.perf_counter() - t0
        RISK_SCORE_CALCULATIONS.labels(status="success").inc()
        RISK_SCORE_DURATION.observe(elapsed)

        log.info(
            "risk_score_calculated",
            box_id=snapshot.box_id,
            overall_risk_score=snapshot.overall_risk_score,
            risk_level=snapshot.risk_level.value,
            churn_probability=snapshot.churn_probability,
            elapsed_ms=int(elapsed * 1000),
        )

        if self._publish is not None:
            await self._publish(snapshot)

        return snapshot

    async def calculate_many(
        self,
        membership_ids: Iterable[str],
        box_id: Optional[str] = None,
    ) -> BatchResult:
        ids = list(membership_ids)
        started_at = self._clock()
        RISK_SCORE_BATCHES.labels(kind="box" if box_id else "list").inc()

        outcomes: list[MembershipOutcome] = []
        for membership_id in ids:
            try:
                snapshot = await self.calculate_risk_score(membership_id)
            except Exception as e:
                # calculate_risk_score has already logged the failure
                outcomes.append(MembershipOutcome(
                    membership_id=membership_id,
                    status="error",
                    error=str(e),
                ))
                continue

            outcomes.append(MembershipOutcome(
                membership_id=membership_id,
                status="success",
                risk_level=snapshot.risk_level,
                overall_risk_score=snapshot.overall_risk_score,
            ))

        successful = sum(1 for o in outcomes if o.status == "success")
        result = BatchResult(
            box_id=box_id,
            total=len(ids),
            successful=successful,
            failed=len(outcomes) - successful,
            outcomes=outcomes,
            started_at=started_at,
            completed_at=self._clock(),
        )

        self._log.info(
            "risk_score_batch_completed",
            box_id=box_id,
            total=result.total,
            successful=result.successful,
            failed=result.failed,
        )
        if result.failed:
            self._log.warning(
                "risk_score_batch_had_errors",
                box_id=box_id,
                error_count=result.failed,
                errors=[{"membership_id": o.membership_id, "error": o.error} for o in result.errors[:5]],
            )
        return result

    async def calculate_box_risk_scores(self, box_id: str) -> BatchResult:
        started_at = self._clock()
        try:
            membership_ids = await self._store.find_active_memberships_by_role(box_id, ATHLETE_ROLE)
        except Exception as e:
            self._log.error("box_risk_scores_listing_failed", box_id=box_id, error=str(e))
            return BatchResult(box_id=box_id, error=str(e), started_at=started_at, completed_at=self._clock())

        self._log.info("box_risk_scores_started", box_id=box_id, membership_count=len(membership_ids))
        return await self.calculate_many(membership_ids, box_id=box_id)
