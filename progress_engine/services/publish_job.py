"""Scheduled publishing.

Publishes every ``scheduled`` asset version whose ``publish_at`` has
passed, as the ``system`` actor, and tells matching subscribers
(``new_version`` trigger) about it.

The publish goes through VersionService, so a scheduled run behaves
exactly like a manual publish: the asset is repointed, the previously
current version is deprecated, and the same ``new_version`` fanout runs.
A version someone else published, rescheduled or archived between the
scan and the write is a skip, not an error.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from progress_engine.core.config import ExpiryJobConfig
from progress_engine.core.metrics import JOB_ITEMS, JOB_RUN_DURATION
from progress_engine.models.content import AssetVersion, LifecycleStatus, RecordKind
from progress_engine.repos.content_repo import ContentStore, ScanFilter
from progress_engine.repos.subscription_repo import SubscriptionRepo
from progress_engine.services.errors import (
    BatchFatalError,
    InvalidTransitionError,
    LookupFailureError,
    PersistenceConflictError,
)
from progress_engine.services.notifications import NotificationFanout, announce_new_version
from progress_engine.services.versions import VersionService

logger = logging.getLogger(__name__)

JOB_NAME = "publish"
SYSTEM_ACTOR = "system"


@dataclass(slots=True)
class PublishRunSummary:
    scanned: int = 0
    published: int = 0
    skipped: int = 0
    errors: int = 0
    error_details: list[str] = field(default_factory=list)
    notified: int = 0


class PublishJob:
    def __init__(
        self,
        versions: VersionService,
        content: ContentStore,
        subscriptions: SubscriptionRepo,
        fanout: NotificationFanout,
        config: ExpiryJobConfig | None = None,
    ) -> None:
        self._versions = versions
        self._content = content
        self._subscriptions = subscriptions
        self._fanout = fanout
        self._config = config or ExpiryJobConfig()

    async def run(self, now: int) -> PublishRunSummary:
        started = time.perf_counter()
        summary = PublishRunSummary()
        scan = ScanFilter(
            kinds=frozenset({RecordKind.ASSET_VERSION}),
            statuses=frozenset({LifecycleStatus.SCHEDULED}),
            page_size=self._config.page_size,
        )
        pages = self._content.scan(scan)
        first_page = True
        try:
            while True:
                try:
                    page = await anext(pages)
                except StopAsyncIteration:
                    break
                except Exception as exc:
                    if first_page:
                        raise BatchFatalError(f"content scan failed: {exc}") from exc
                    summary.errors += 1
                    summary.error_details.append(f"scan aborted: {exc}")
                    logger.error("Content scan failed mid-run, stopping", exc_info=True,
                                 extra={"job": JOB_NAME})
                    break
                first_page = False
                for version in page:
                    await self._process(version, now, summary)
        finally:
            JOB_RUN_DURATION.labels(job=JOB_NAME).observe(time.perf_counter() - started)

        logger.info(
            "Publish run: scanned=%d published=%d skipped=%d errors=%d notified=%d",
            summary.scanned,
            summary.published,
            summary.skipped,
            summary.errors,
            summary.notified,
            extra={"job": JOB_NAME},
        )
        return summary

    async def _process(
        self, version: AssetVersion, now: int, summary: PublishRunSummary
    ) -> None:
        summary.scanned += 1
        if version.publish_at is None or version.publish_at > now:
            summary.skipped += 1
            JOB_ITEMS.labels(job=JOB_NAME, outcome="skipped").inc()
            return

        try:
            published = await self._versions.publish(
                version.version_id, SYSTEM_ACTOR, version.change_log, now=now
            )
        except (PersistenceConflictError, InvalidTransitionError):
            summary.skipped += 1
            JOB_ITEMS.labels(job=JOB_NAME, outcome="conflict").inc()
            logger.info("Version changed concurrently, skipped",
                        extra={"job": JOB_NAME, "item_id": version.version_id})
            return
        except Exception as exc:
            summary.errors += 1
            summary.error_details.append(f"{version.version_id}: {exc}")
            JOB_ITEMS.labels(job=JOB_NAME, outcome="error").inc()
            logger.error("Failed to publish version", exc_info=True,
                         extra={"job": JOB_NAME, "item_id": version.version_id})
            return

        summary.published += 1
        JOB_ITEMS.labels(job=JOB_NAME, outcome="published").inc()

        try:
            result = await announce_new_version(
                published,
                content=self._content,
                subscriptions=self._subscriptions,
                fanout=self._fanout,
                concurrency=self._config.fanout_concurrency,
            )
        except LookupFailureError as exc:
            summary.error_details.append(str(exc))
            logger.warning("Could not resolve subscribers", exc_info=True,
                           extra={"job": JOB_NAME, "item_id": published.version_id})
            return
        summary.notified += result.created
