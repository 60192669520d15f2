"""Async engine, session factory and schema bootstrap for the leave store."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any

from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from leave_approvals import models as _models
from leave_approvals.core.config import settings
from leave_approvals.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

# Registers LeaveRequest and User on SQLModel.metadata before create_all.
_MODEL_REGISTRY = _models
PROJECT_ROOT = Path(__file__).resolve().parents[2]
MIGRATIONS_DIR = PROJECT_ROOT / "migrations" / "versions"

# Bare driver names mapped to the async drivers this service ships with.
_ASYNC_DRIVERS = {
    "postgresql": "postgresql+psycopg",
    "sqlite": "sqlite+aiosqlite",
}

logger = get_logger(__name__)


def _normalize_database_url(database_url: str) -> str:
    scheme, sep, rest = database_url.partition("://")
    if not sep:
        return database_url
    return f"{_ASYNC_DRIVERS.get(scheme, scheme)}://{rest}"


def _engine_options(database_url: str) -> dict[str, Any]:
    if database_url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True}


_DATABASE_URL = _normalize_database_url(settings.database_url)
async_engine: AsyncEngine = create_async_engine(_DATABASE_URL, **_engine_options(_DATABASE_URL))
async_session_maker = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def _alembic_config() -> Config:
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    # Logging is already configured by the API process or the worker.
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


def run_migrations() -> None:
    """Upgrade the leave store schema to the latest Alembic revision."""
    from alembic import command

    logger.info("db.migrations.running")
    command.upgrade(_alembic_config(), "head")
    logger.info("db.migrations.complete")


async def init_db() -> None:
    """Prepare the schema: Alembic when auto-migrate is on, otherwise create_all."""
    if settings.db_auto_migrate:
        if any(MIGRATIONS_DIR.glob("*.py")):
            await asyncio.to_thread(run_migrations)
            return
        logger.warning("db.migrations.missing", extra={"versions_dir": str(MIGRATIONS_DIR)})

    async with async_engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("db.schema.created")


async def ping_db() -> bool:
    """Return True when the database answers a trivial query."""
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("db.ping_failed", exc_info=True)
        return False
    return True


async def dispose_db() -> None:
    await async_engine.dispose()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session; an open transaction is rolled back on exit.

    Store writes commit explicitly, so anything still pending here belongs to
    a request that failed part-way.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                try:
                    await session.rollback()
                except SQLAlchemyError:
                    logger.exception("db.session.rollback_failed")
