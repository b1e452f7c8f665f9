"""Background worker process.

RUN:  python -m progress_engine.worker

Same image as the API, different command:
  api:    uvicorn progress_engine.main:app --host 0.0.0.0 --port 8000
  worker: python -m progress_engine.worker

The loop polls every registered queue round-robin, dequeues one task at a
time and dispatches it to the handler registered for that queue.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from progress_engine.core.config import SETTINGS
from progress_engine.core.logging import request_id_var, setup_logging
from progress_engine.services import jobs
from progress_engine.services.task_queue import (
    CONTENT_EXPIRY,
    PATH_ROLLUP,
    SCHEDULED_PUBLISH,
    task_queue,
)

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("progress_engine.worker")


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


# ---------------------------------------------------------------------------
# Task handlers
# ---------------------------------------------------------------------------


@register_handler(PATH_ROLLUP)
async def handle_path_rollup(payload: dict) -> None:
    rollup = await jobs.recompute_path(payload["user_id"], payload["path_id"])
    logger.info(
        "Rollup recomputed: %d/%d courses, status=%s",
        rollup.completed_courses,
        rollup.total_courses,
        rollup.status,
        extra={"user_id": payload["user_id"], "path_id": payload["path_id"]},
    )


@register_handler(CONTENT_EXPIRY)
async def handle_content_expiry(payload: dict) -> None:
    summary = await jobs.run_expiry(payload.get("now"))
    logger.info("Expiry task done: %s", dataclasses.asdict(summary), extra={"job": "expiry"})


@register_handler(SCHEDULED_PUBLISH)
async def handle_scheduled_publish(payload: dict) -> None:
    summary = await jobs.run_publish(payload.get("now"))
    logger.info("Publish task done: %s", dataclasses.asdict(summary), extra={"job": "publish"})


# ---------------------------------------------------------------------------
# Main worker loop
# ---------------------------------------------------------------------------


async def process_one(queue_name: str, timeout: int = 1) -> bool:
    """Dequeue and handle at most one task; True if a task was taken."""
    task = await task_queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    token = request_id_var.set(task.id)
    try:
        await handler(task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    finally:
        request_id_var.reset(token)
    return True


async def run_worker() -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        taken = [await process_one(queue_name) for queue_name in queues]
        if not any(taken):
            # In-memory dequeue never blocks; avoid spinning on empty queues.
            await asyncio.sleep(0.5)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
