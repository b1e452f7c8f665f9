"""Entry points shared by the HTTP job triggers and the worker.

Each call opens one unit of work (see ``repos.stores.open_stores``),
builds the job from its repositories and runs it.
"""

from __future__ import annotations

from progress_engine.core.clock import utc_now
from progress_engine.core.config import SETTINGS, ExpiryJobConfig
from progress_engine.models.progress import PathProgressRollup
from progress_engine.repos.stores import Stores, open_stores
from progress_engine.services.errors import RecordNotFoundError
from progress_engine.services.expiry_job import ExpiryJob, ExpiryRunSummary
from progress_engine.services.notifications import NotificationFanout
from progress_engine.services.publish_job import PublishJob, PublishRunSummary
from progress_engine.services.rollup import compute_rollup
from progress_engine.services.versions import VersionService


def build_expiry_job(stores: Stores, config: ExpiryJobConfig) -> ExpiryJob:
    return ExpiryJob(
        stores.content,
        stores.subscriptions,
        stores.access_history,
        NotificationFanout(stores.notifications),
        config,
    )


def build_publish_job(stores: Stores, config: ExpiryJobConfig) -> PublishJob:
    return PublishJob(
        VersionService(stores.content),
        stores.content,
        stores.subscriptions,
        NotificationFanout(stores.notifications),
        config,
    )


async def run_expiry(
    now: int | None = None, config: ExpiryJobConfig | None = None
) -> ExpiryRunSummary:
    async with open_stores() as stores:
        job = build_expiry_job(stores, config or SETTINGS.expiry)
        return await job.run(now if now is not None else utc_now())


async def run_publish(
    now: int | None = None, config: ExpiryJobConfig | None = None
) -> PublishRunSummary:
    async with open_stores() as stores:
        job = build_publish_job(stores, config or SETTINGS.expiry)
        return await job.run(now if now is not None else utc_now())


async def recompute_path(user_id: str, path_id: str) -> PathProgressRollup:
    """Recompute and persist one learner's rollup for one path."""
    async with open_stores() as stores:
        path = await stores.paths.get(path_id)
        if path is None:
            raise RecordNotFoundError("path", path_id)
        existing = await stores.path_progress.get(user_id, path_id)
        rollup = await compute_rollup(
            user_id, path, existing, stores.course_progress.get
        )
        await stores.path_progress.put(user_id, path_id, rollup)
        return rollup
