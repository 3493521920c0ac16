"""
risk_score_worker.py
────────────────────
Consumes RiskScoreMessage payloads from the analytics queue:

  individual  → one membership, failures re-raised so the queue retries
  batch       → explicit membership id list, partial success
  box         → every active athlete in a box, partial success

Usage (one-off, e.g. from a Kubernetes CronJob):
  python -m app.workers.risk_score_worker --box-id <uuid>
  python -m app.workers.risk_score_worker --membership-id <uuid>
"""
from __future__ import annotations

import argparse
import asyncio
import sys
import time
from typing import Optional

import structlog

from app.core.log_config import configure_logging
from app.models.database import get_session_factory
from app.schemas.risk_message import MessageType, RiskScoreMessage
from app.schemas.risk_score import BatchResult, RiskScoreSnapshot
from app.services.behavioral_store import SqlAlchemyBehavioralStore
from app.services.event_publisher import close_producer
from app.services.risk_score_service import RiskScoreService

logger = structlog.get_logger(__name__)


class RiskScoreWorker:

    def __init__(self, service: RiskScoreService):
        self._service = service

    async def process_individual(self, message: RiskScoreMessage) -> RiskScoreSnapshot:
        if not message.membership_id:
            raise ValueError("Missing membership_id for individual calculation")
        return await self._service.calculate_risk_score(message.membership_id)

    async def process_batch(self, message: RiskScoreMessage) -> BatchResult:
        if not message.membership_ids:
            raise ValueError("Missing or empty membership_ids for batch calculation")
        logger.info(
            "risk_score_batch_processing",
            count=len(message.membership_ids),
            priority=message.priority.value,
        )
        return await self._service.calculate_many(message.membership_ids)

    async def process_box(self, message: RiskScoreMessage) -> BatchResult:
        if not message.box_id:
            raise ValueError("Missing box_id for box calculation")
        return await self._service.calculate_box_risk_scores(message.box_id)

    async def process(self, message: RiskScoreMessage):
        handlers = {
            MessageType.INDIVIDUAL: self.process_individual,
            MessageType.BATCH: self.process_batch,
            MessageType.BOX: self.process_box,
        }
        t0 = time.perf_counter()
        logger.info("risk_score_worker_started", type=message.type.value, priority=message.priority.value)

        try:
            result = await handlers[message.type](message)
        except Exception as e:
            logger.error(
                "risk_score_worker_failed",
                type=message.type.value,
                message=message.model_dump(mode="json"),
                error=str(e),
            )
            raise

        logger.info(
            "risk_score_worker_completed",
            type=message.type.value,
            duration_ms=int((time.perf_counter() - t0) * 1000),
        )
        return result


def build_worker() -> RiskScoreWorker:
    store = SqlAlchemyBehavioralStore(get_session_factory())
    return RiskScoreWorker(RiskScoreService(store))


def _parse_message(argv: Optional[list[str]] = None) -> RiskScoreMessage:
    parser = argparse.ArgumentParser(description="Recalculate athlete churn risk scores")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--box-id", help="Recalculate every active athlete in this box")
    target.add_argument("--membership-id", help="Recalculate a single membership")
    args = parser.parse_args(argv)

    if args.box_id:
        return RiskScoreMessage(type=MessageType.BOX, box_id=args.box_id)
    return RiskScoreMessage(type=MessageType.INDIVIDUAL, membership_id=args.membership_id)


async def _run(message: RiskScoreMessage):
    try:
        return await build_worker().process(message)
    finally:
        await close_producer()


if __name__ == "__main__":
    configure_logging()
    msg = _parse_message()

    try:
        result = asyncio.run(_run(msg))
    except Exception as e:
        print(f"✗ Risk score calculation failed: {e}", file=sys.stderr)
        sys.exit(1)

    if isinstance(result, BatchResult):
        print(f"✓ Risk scores recalculated: {result.successful}/{result.total} succeeded, {result.failed} failed")
        sys.exit(1 if result.error else 0)
    print(f"✓ Risk score for {result.membership_id}: {result.risk_level.value} ({result.overall_risk_score})")
