"""FastAPI application entrypoint and router wiring for the leave approval service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from leave_approvals.api.leave_requests import router as leave_router
from leave_approvals.core.config import settings
from leave_approvals.core.error_handling import install_error_handling
from leave_approvals.core.logging import configure_logging, get_logger
from leave_approvals.db.session import dispose_db, init_db, ping_db
from leave_approvals.schemas.health import HealthStatusResponse
from leave_approvals.services.execution.engine import QueueExecutionEngine
from leave_approvals.services.queue import RedisTaskQueue, redis_client

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

configure_logging()
logger = get_logger(__name__)
OPENAPI_TAGS = [
    {
        "name": "health",
        "description": "Service liveness/readiness probes used by infrastructure and runtime checks.",
    },
    {
        "name": "leave",
        "description": (
            "Leave applications and the accept/reject decision links sent to administrators."
        ),
    },
]


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncIterator[None]:
    """Initialize the database and the execution engine before serving requests."""
    logger.info(
        "app.lifecycle.starting",
        extra={"environment": settings.environment, "db_auto_migrate": settings.db_auto_migrate},
    )
    await init_db()
    client = redis_client(settings.rq_redis_url)
    fastapi_app.state.execution_engine = QueueExecutionEngine(
        RedisTaskQueue(client, settings.rq_queue_name),
        key_prefix=settings.saga_execution_key_prefix,
        timeout_policy=settings.saga_timeout_policy,
    )
    logger.info("app.lifecycle.started")
    try:
        yield
    finally:
        client.close()
        await dispose_db()
        logger.info("app.lifecycle.stopped")


app = FastAPI(
    title="Leave Approvals API",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info("app.cors.enabled", extra={"origins_count": len(origins)})
else:
    logger.info("app.cors.disabled")

install_error_handling(app)


@app.get(
    "/healthz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Check",
    description="Lightweight liveness probe endpoint.",
    responses={
        status.HTTP_200_OK: {
            "description": "Service is alive.",
            "content": {"application/json": {"example": {"ok": True}}},
        }
    },
)
def healthz() -> HealthStatusResponse:
    """Lightweight liveness probe endpoint."""
    return HealthStatusResponse(ok=True)


@app.get(
    "/readyz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Readiness Check",
    description="Readiness probe; fails with 503 while the database is unreachable.",
    responses={
        status.HTTP_200_OK: {
            "description": "Service is ready.",
            "content": {"application/json": {"example": {"ok": True}}},
        },
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Database unavailable."},
    },
)
async def readyz() -> HealthStatusResponse:
    """Readiness probe endpoint for service orchestration checks."""
    if not await ping_db():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        )
    return HealthStatusResponse(ok=True)


app.include_router(leave_router)
logger.debug("app.routes.registered", extra={"count": len(app.routes)})
