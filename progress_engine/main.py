from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from progress_engine.api.health import router as health_router
from progress_engine.api.jobs import router as jobs_router
from progress_engine.api.metrics_endpoint import router as metrics_router
from progress_engine.api.notifications import router as notifications_router
from progress_engine.api.progress import router as progress_router
from progress_engine.api.versions import router as versions_router
from progress_engine.core.config import SETTINGS
from progress_engine.core.logging import setup_logging
from progress_engine.db.engine import lifespan_db
from progress_engine.db.redis import lifespan_redis
from progress_engine.middleware.metrics import MetricsMiddleware
from progress_engine.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="progress-engine",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext (outermost) -> Metrics -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(progress_router)
app.include_router(versions_router)
app.include_router(jobs_router)
app.include_router(notifications_router)

logger.info(
    "progress-engine started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
