"""Idempotent notification fanout.

Each notification's id is derived from the event that caused it
(``kind:item_id:user_id``), so replaying an event never creates a second
record for the same user.  The ids are part of the persisted contract
shared with the portal's inbox, so the kinds stay short and stable:

  expired      an asset version or content item expired
  new_version  an asset version was published, by hand or on schedule

Fanout to a recipient set runs concurrently, bounded by a semaphore.  One
recipient's failure is logged and counted under
``notifications_total{result="failed"}``; it never stops delivery to the
others, and it never fails the lifecycle change that triggered it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from progress_engine.core.clock import Clock, utc_now
from progress_engine.core.metrics import NOTIFICATIONS
from progress_engine.models.content import AssetVersion
from progress_engine.models.notification import Notification, NotificationKind
from progress_engine.repos.content_repo import ContentStore
from progress_engine.repos.notification_repo import NotificationRepo
from progress_engine.repos.subscription_repo import SubscriptionRepo
from progress_engine.services.errors import LookupFailureError
from progress_engine.services.subscription_matcher import matches

logger = logging.getLogger(__name__)


def notification_id(kind: NotificationKind | str, item_id: str, user_id: str) -> str:
    return f"{kind}:{item_id}:{user_id}"


@dataclass(frozen=True, slots=True)
class FanoutResult:
    created: int = 0
    duplicates: int = 0
    failed: int = 0


class NotificationFanout:
    def __init__(self, store: NotificationRepo, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def notify(
        self,
        user_id: str,
        item_id: str,
        title: str,
        message: str,
        deterministic_id: str,
        *,
        type: str = "info",
    ) -> Notification:
        """Create the notification unless one with the same id exists.

        An existing record is returned untouched.
        """
        notification, _ = await self.deliver(
            user_id, item_id, title, message, deterministic_id, type=type
        )
        return notification

    async def deliver(
        self,
        user_id: str,
        item_id: str,
        title: str,
        message: str,
        deterministic_id: str,
        *,
        type: str = "info",
    ) -> tuple[Notification, bool]:
        """Like notify, also reporting whether this call created the record."""
        candidate = Notification(
            notification_id=deterministic_id,
            user_id=user_id,
            title=title,
            message=message,
            created_at=self._clock(),
            item_id=item_id,
            type=type,
        )
        return await self._store.create_if_absent(candidate)

    async def notify_many(
        self,
        user_ids: Iterable[str],
        *,
        kind: NotificationKind,
        item_id: str,
        title: str,
        message: str,
        type: str = "info",
        concurrency: int = 8,
    ) -> FanoutResult:
        """Notify every recipient once, at most ``concurrency`` at a time.

        A failure for one recipient is logged and counted; it does not stop
        delivery to the others.
        """
        recipients = sorted(set(user_ids))
        if not recipients:
            return FanoutResult()
        sem = asyncio.Semaphore(max(1, concurrency))

        async def _one(user_id: str) -> bool:
            async with sem:
                _, created = await self.deliver(
                    user_id,
                    item_id,
                    title,
                    message,
                    notification_id(kind, item_id, user_id),
                    type=type,
                )
                return created

        outcomes = await asyncio.gather(
            *(_one(u) for u in recipients), return_exceptions=True
        )

        created = duplicates = failed = 0
        for user_id, outcome in zip(recipients, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                failed += 1
                NOTIFICATIONS.labels(kind=kind.value, result="failed").inc()
                logger.error(
                    "Notification delivery failed: %s",
                    outcome,
                    extra={"item_id": item_id, "user_id": user_id},
                )
            elif outcome:
                created += 1
                NOTIFICATIONS.labels(kind=kind.value, result="created").inc()
            else:
                duplicates += 1
                NOTIFICATIONS.labels(kind=kind.value, result="duplicate").inc()
        return FanoutResult(created=created, duplicates=duplicates, failed=failed)


async def announce_new_version(
    version: AssetVersion,
    *,
    content: ContentStore,
    subscriptions: SubscriptionRepo,
    fanout: NotificationFanout,
    concurrency: int = 8,
) -> FanoutResult:
    """Tell subscribers with the ``new_version`` trigger about a publish.

    Recipients are the subscriptions whose filters match the owning asset.
    Raises LookupFailureError when the asset or the subscriptions cannot be
    read; the publish itself has already happened by then.
    """
    try:
        asset = await content.get_asset(version.asset_id)
        candidates = await subscriptions.list_all()
    except Exception as exc:
        raise LookupFailureError(version.version_id, f"recipients: {exc}") from exc
    if asset is None:
        return FanoutResult()

    recipients = {
        s.user_id for s in candidates if s.triggers.new_version and matches(s, asset)
    }
    return await fanout.notify_many(
        recipients,
        kind=NotificationKind.NEW_VERSION,
        item_id=version.version_id,
        title="New version published",
        message=f'Version {version.version_number} of "{asset.title}" is now available.',
        concurrency=concurrency,
    )
