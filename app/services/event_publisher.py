"""
Kafka event publisher — fire-and-forget.

Publishes a RISK_SCORE_CALCULATED event after every persisted snapshot for
downstream consumers (coach alerts, retention dashboards).
Gracefully degrades if Kafka is unavailable.
"""
from __future__ import annotations

import json
import structlog
from app.core.config import get_settings
from app.schemas.risk_score import RiskScoreSnapshot

logger = structlog.get_logger()

_producer = None


async def _get_producer():
    global _producer
    settings = get_settings()
    if not settings.kafka_enabled:
        return None
    if _producer is None:
        from aiokafka import AIOKafkaProducer
        _producer = AIOKafkaProducer(bootstrap_servers=settings.kafka_bootstrap)
        await _producer.start()
    return _producer


def build_event(snapshot: RiskScoreSnapshot) -> dict:
    return {
        "event_type": "RISK_SCORE_CALCULATED",
        "membership_id": snapshot.membership_id,
        "box_id": snapshot.box_id,
        "overall_risk_score": snapshot.overall_risk_score,
        "risk_level": snapshot.risk_level.value,
        "churn_probability": snapshot.churn_probability,
        "calculated_at": snapshot.calculated_at.isoformat(),
        "valid_until": snapshot.valid_until.isoformat(),
    }


async def publish_risk_score_event(snapshot: RiskScoreSnapshot) -> None:
    settings = get_settings()
    if not settings.kafka_enabled:
        return

    try:
        producer = await _get_producer()
        if producer:
            await producer.send_and_wait(
                settings.kafka_topic_risk_events,
                json.dumps(build_event(snapshot)).encode("utf-8"),
                key=snapshot.membership_id.encode("utf-8"),
            )
            logger.info("kafka_event_published", membership_id=snapshot.membership_id)
    except Exception as e:
        # Fire-and-forget: log but don't fail the calculation
        logger.warning("kafka_publish_failed", membership_id=snapshot.membership_id, error=str(e))


async def close_producer() -> None:
    global _producer
    if _producer is not None:
        await _producer.stop()
        _producer = None
