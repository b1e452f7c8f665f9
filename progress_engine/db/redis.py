"""Redis client for the background task queue.

Redis only carries queued job triggers (``tasks:<queue>`` lists); no
engine state lives there.  Without REDIS_URL the queue falls back to an
in-process list and background triggers are served by a worker running
in the same process only.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from progress_engine.core.config import SETTINGS
from progress_engine.db.engine import DependencyStatus

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


async def check_redis() -> DependencyStatus:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"
    return "ok"


@asynccontextmanager
async def lifespan_redis():
    if redis_pool is None:
        logger.info("No REDIS_URL configured, task queue uses in-memory fallback")
        yield
        return

    if await check_redis() == "ok":
        logger.info("Redis connected")
    else:
        # Inline job triggers still work; background ones fail until Redis is back.
        logger.error("Redis unreachable on startup")

    try:
        yield
    finally:
        await redis_pool.aclose()
        logger.info("Redis connection pool closed")
