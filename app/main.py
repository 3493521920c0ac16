"""
Churn Risk Engine — FastAPI Application Entry Point

GET  /v1/risk-scores/{membership_id}            → latest snapshot
POST /v1/risk-scores/{membership_id}/calculate  → recompute one membership
POST /v1/admin/boxes/{box_id}/recalculate-risk-scores
GET  /metrics                                   → Prometheus
GET  /docs                                      → OpenAPI / Swagger UI
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from app.api.risk_endpoint import router as risk_router
from app.api.admin_endpoint import router as admin_router
from app.core.config import get_settings
from app.core.log_config import configure_logging
from app.services.event_publisher import close_producer

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("risk_engine_starting", env=get_settings().app_env)
    yield
    await close_producer()
    logger.info("risk_engine_shutting_down")


app = FastAPI(
    title="Churn Risk Engine",
    description="Per-membership churn risk scoring for box athletes",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── Prometheus metrics ──
if get_settings().metrics_enabled:
    app.mount("/metrics", make_asgi_app())

# ── Routes ──
app.include_router(risk_router)
app.include_router(admin_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "churn-risk-engine",
        "version": "1.0.0",
        "docs": "/docs",
        "calculate": "POST /v1/risk-scores/{membership_id}/calculate",
    }
