"""Health and readiness endpoints.

/health (liveness): always 200 while the process answers; each
dependency is reported as ok, degraded or not_configured.

/ready (readiness): 503 when the database is configured but unreachable.
Redis does not gate readiness since inline job triggers work without it.
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from progress_engine.db.engine import check_database
from progress_engine.db.redis import check_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks = {"database": await check_database(), "redis": await check_redis()}
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
