"""Job triggers for the scheduler (cron, EventBridge, k8s CronJob...).

POST /v1/jobs/expiry   run the expiry job now and return its summary
POST /v1/jobs/publish  run the scheduled-publish job now

With ``?background=true`` the run is queued for the worker instead and
the response is 202 with the task id.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response, status

from progress_engine.api.dependencies import StoresDep
from progress_engine.core.clock import utc_now
from progress_engine.core.config import SETTINGS
from progress_engine.services.errors import BatchFatalError
from progress_engine.services.jobs import build_expiry_job, build_publish_job
from progress_engine.services.task_queue import (
    CONTENT_EXPIRY,
    SCHEDULED_PUBLISH,
    task_queue,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/jobs", tags=["jobs"])

BackgroundQ = Annotated[bool, Query()]
NowQ = Annotated[int | None, Query(gt=0, description="Override the job clock (epoch seconds)")]


async def _enqueue(queue: str, now: int | None, response: Response) -> dict:
    task = await task_queue.enqueue(queue, {"now": now})
    logger.info("Queued %s task %s", queue, task.id)
    response.status_code = status.HTTP_202_ACCEPTED
    return {"task_id": task.id, "queue": queue}


@router.post("/expiry")
async def trigger_expiry(
    stores: StoresDep,
    response: Response,
    background: BackgroundQ = False,
    now: NowQ = None,
) -> dict:
    if background:
        return await _enqueue(CONTENT_EXPIRY, now, response)
    job = build_expiry_job(stores, SETTINGS.expiry)
    try:
        summary = await job.run(now if now is not None else utc_now())
    except BatchFatalError as e:
        logger.error("Expiry run could not start: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        ) from None
    return dataclasses.asdict(summary)


@router.post("/publish")
async def trigger_publish(
    stores: StoresDep,
    response: Response,
    background: BackgroundQ = False,
    now: NowQ = None,
) -> dict:
    if background:
        return await _enqueue(SCHEDULED_PUBLISH, now, response)
    job = build_publish_job(stores, SETTINGS.expiry)
    try:
        summary = await job.run(now if now is not None else utc_now())
    except BatchFatalError as e:
        logger.error("Publish run could not start: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        ) from None
    return dataclasses.asdict(summary)
