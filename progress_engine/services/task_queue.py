"""Background task queue on Redis lists.

The API LPUSHes a task onto ``tasks:<queue>`` and answers 202; the worker
BRPOPs from the other end, so each queue is FIFO.  Delivery is
at-most-once: a task popped by a worker that then dies is lost.  Every
task here triggers an idempotent job, so the next scheduled trigger
covers anything dropped.
"""

from __future__ import annotations

import json
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from progress_engine.core.metrics import QUEUE_DEPTH
from progress_engine.db.redis import redis_pool

PATH_ROLLUP = "path_rollup"
CONTENT_EXPIRY = "content_expiry"
SCHEDULED_PUBLISH = "scheduled_publish"

QUEUES = frozenset({PATH_ROLLUP, CONTENT_EXPIRY, SCHEDULED_PUBLISH})


def _check_queue(queue: str) -> None:
    if queue not in QUEUES:
        raise ValueError(f"unknown queue {queue!r}")


@dataclass(frozen=True, slots=True)
class Task:
    """One queued job trigger.

    payload carries the handler's keyword arguments and must be JSON
    serializable (``{"now": ...}`` for the content jobs,
    ``{"user_id": ..., "path_id": ...}`` for a rollup).
    """

    id: str
    queue: str
    payload: dict

    @staticmethod
    def new(queue: str, payload: dict) -> Task:
        return Task(id=str(uuid.uuid4()), queue=queue, payload=payload)

    def to_json(self) -> str:
        return json.dumps({"id": self.id, "queue": self.queue, "payload": self.payload})

    @staticmethod
    def from_json(raw: str) -> Task:
        return Task(**json.loads(raw))


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    """Process-local queue used when REDIS_URL is not set.  Never blocks."""

    def __init__(self) -> None:
        self._queues: dict[str, deque[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        _check_queue(queue)
        task = Task.new(queue, payload)
        pending = self._queues.setdefault(queue, deque())
        pending.append(task)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(pending))
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        pending = self._queues.get(queue)
        if not pending:
            return None
        task = pending.popleft()
        QUEUE_DEPTH.labels(queue_name=queue).set(len(pending))
        return task

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, ()))


class RedisTaskQueue:
    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    def _key(self, queue: str) -> str:
        return f"{self._PREFIX}{queue}"

    async def enqueue(self, queue: str, payload: dict) -> Task:
        _check_queue(queue)
        task = Task.new(queue, payload)
        depth = await self._redis.lpush(self._key(queue), task.to_json())
        QUEUE_DEPTH.labels(queue_name=queue).set(depth)
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        result = await self._redis.brpop(self._key(queue), timeout=timeout)
        if result is None:
            return None
        _, raw = result
        QUEUE_DEPTH.labels(queue_name=queue).dec()
        return Task.from_json(raw)

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(self._key(queue))


if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
