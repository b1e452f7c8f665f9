"""Scheduled content expiry.

One run pages through every asset version and content item, expires the
ones whose expiry timestamp has passed, and notifies the users who care:
subscribers whose filters match the item (with the ``expired`` trigger on)
plus anyone who downloaded or cited it within the lookback window.

Re-running is safe.  Already-expired items are skipped, status writes are
conditional on the status read, and notification ids are deterministic.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from progress_engine.core.config import ExpiryJobConfig
from progress_engine.core.metrics import JOB_ITEMS, JOB_RUN_DURATION
from progress_engine.models.content import (
    AssetVersion,
    ContentRecord,
    LifecycleStatus,
)
from progress_engine.models.notification import NotificationKind
from progress_engine.repos.content_repo import ContentStore, ScanFilter
from progress_engine.repos.subscription_repo import AccessHistory, SubscriptionRepo
from progress_engine.services import lifecycle
from progress_engine.services.errors import (
    BatchFatalError,
    LookupFailureError,
    PersistenceConflictError,
)
from progress_engine.services.notifications import NotificationFanout
from progress_engine.services.subscription_matcher import Faceted, matches
from progress_engine.services.versions import release_asset_pointer

logger = logging.getLogger(__name__)

JOB_NAME = "expiry"

_ALREADY_DONE = frozenset({LifecycleStatus.EXPIRED, LifecycleStatus.ARCHIVED})


@dataclass(slots=True)
class ExpiryRunSummary:
    scanned: int = 0
    expired: int = 0
    skipped: int = 0
    errors: int = 0
    error_details: list[str] = field(default_factory=list)
    notified: int = 0
    lookup_failures: int = 0


class ExpiryJob:
    def __init__(
        self,
        content: ContentStore,
        subscriptions: SubscriptionRepo,
        access_history: AccessHistory,
        fanout: NotificationFanout,
        config: ExpiryJobConfig | None = None,
    ) -> None:
        self._content = content
        self._subscriptions = subscriptions
        self._access = access_history
        self._fanout = fanout
        self._config = config or ExpiryJobConfig()

    async def run(self, now: int) -> ExpiryRunSummary:
        """Expire everything due at ``now``.

        Raises BatchFatalError only when the first scan page cannot be read;
        every later failure is recorded in the returned summary.
        """
        started = time.perf_counter()
        summary = ExpiryRunSummary()
        pages = self._content.scan(ScanFilter(page_size=self._config.page_size))
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
                for record in page:
                    await self._process(record, now, summary)
        finally:
            JOB_RUN_DURATION.labels(job=JOB_NAME).observe(time.perf_counter() - started)

        logger.info(
            "Expiry run: scanned=%d expired=%d skipped=%d errors=%d notified=%d",
            summary.scanned,
            summary.expired,
            summary.skipped,
            summary.errors,
            summary.notified,
            extra={"job": JOB_NAME},
        )
        return summary

    def _is_due(self, record: ContentRecord, now: int) -> bool:
        expires_at = record.expires_at
        if expires_at is None or expires_at > now:
            return False
        if record.status in _ALREADY_DONE:
            return False
        return lifecycle.can_apply(record.status, "expire")

    async def _process(
        self, record: ContentRecord, now: int, summary: ExpiryRunSummary
    ) -> None:
        summary.scanned += 1
        if not self._is_due(record, now):
            summary.skipped += 1
            JOB_ITEMS.labels(job=JOB_NAME, outcome="skipped").inc()
            return

        expired = lifecycle.expire(record, now=now)
        try:
            ok = await self._content.conditional_update(
                record.record_id, record.status, expired
            )
        except PersistenceConflictError:
            ok = False
        except Exception as exc:
            summary.errors += 1
            summary.error_details.append(f"{record.record_id}: {exc}")
            JOB_ITEMS.labels(job=JOB_NAME, outcome="error").inc()
            logger.error("Failed to expire record", exc_info=True,
                         extra={"job": JOB_NAME, "item_id": record.record_id})
            return
        if not ok:
            summary.skipped += 1
            JOB_ITEMS.labels(job=JOB_NAME, outcome="conflict").inc()
            logger.info("Record changed concurrently, skipped",
                        extra={"job": JOB_NAME, "item_id": record.record_id})
            return

        summary.expired += 1
        JOB_ITEMS.labels(job=JOB_NAME, outcome="expired").inc()

        facets: Faceted | None
        if isinstance(expired, AssetVersion):
            facets, title = None, expired.version_id
            try:
                await release_asset_pointer(self._content, expired, now)
            except Exception as exc:
                summary.error_details.append(f"{expired.asset_id}: pointer update failed: {exc}")
                logger.error("Asset pointer update failed", exc_info=True,
                             extra={"job": JOB_NAME, "item_id": expired.record_id})
            try:
                asset = await self._content.get_asset(expired.asset_id)
            except Exception as exc:
                asset = None
                self._lookup_failed(summary, LookupFailureError(expired.asset_id, str(exc)))
            if asset is not None:
                facets = asset
                title = asset.title
        else:
            facets, title = expired, expired.title

        recipients = await self._recipients(expired, facets, now, summary)
        if isinstance(expired, AssetVersion):
            message = f'Version {expired.version_number} of "{title}" has expired.'
        else:
            message = f'The content "{title}" has expired.'
        result = await self._fanout.notify_many(
            recipients,
            kind=NotificationKind.EXPIRED,
            item_id=expired.record_id,
            title="Content expired",
            message=message,
            type="warning",
            concurrency=self._config.fanout_concurrency,
        )
        summary.notified += result.created

    async def _recipients(
        self,
        record: ContentRecord,
        facets: Faceted | None,
        now: int,
        summary: ExpiryRunSummary,
    ) -> set[str]:
        users: set[str] = set()
        if facets is not None:
            try:
                subscriptions = await self._subscriptions.list_all()
            except Exception as exc:
                self._lookup_failed(
                    summary, LookupFailureError(record.record_id, f"subscriptions: {exc}")
                )
            else:
                users.update(
                    s.user_id
                    for s in subscriptions
                    if s.triggers.expired and matches(s, facets)
                )
        try:
            users |= await self._access.users_who_accessed(
                record.access_key, self._config.lookback_days, now
            )
        except Exception as exc:
            self._lookup_failed(
                summary, LookupFailureError(record.record_id, f"access history: {exc}")
            )
        return users

    def _lookup_failed(self, summary: ExpiryRunSummary, err: LookupFailureError) -> None:
        summary.lookup_failures += 1
        summary.error_details.append(str(err))
        logger.warning("%s", err, extra={"job": JOB_NAME, "item_id": err.entity_id})
