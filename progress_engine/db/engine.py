"""Async SQLAlchemy engine, session scope and health probe.

With DATABASE_URL set (``postgresql+asyncpg://...``) the engine and
session factory are created at import time; every unit of work (one HTTP
request, one job run, one worker task) opens a ``session_scope()``.
Without it both are None and ``repos.stores`` hands out the in-memory
repositories instead.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Literal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from progress_engine.core.config import SETTINGS

logger = logging.getLogger(__name__)

DependencyStatus = Literal["ok", "degraded", "not_configured"]


class Base(DeclarativeBase):
    """Declarative base; tables live in ``progress_engine.db.tables``."""


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        # Job runs can sit idle between pages long enough for a proxy to
        # drop the connection.
        pool_pre_ping=True,
    )
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """One transaction: commit on success, roll back on exception."""
    if async_session_factory is None:
        raise RuntimeError("DATABASE_URL is not configured, cannot open a session")
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_database() -> DependencyStatus:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string(hide_password=True))
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
