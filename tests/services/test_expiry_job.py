from __future__ import annotations

import asyncio
import logging

import pytest
from prometheus_client import REGISTRY

from progress_engine.core.config import ExpiryJobConfig
from progress_engine.models.content import ContentItem, LifecycleStatus
from progress_engine.models.subscription import (
    AccessEvent,
    Subscription,
    SubscriptionTriggers,
)
from progress_engine.repos.content_repo import InMemoryContentStore
from progress_engine.repos.notification_repo import InMemoryNotificationRepo
from progress_engine.repos.subscription_repo import (
    InMemoryAccessHistory,
    InMemorySubscriptionRepo,
)
from progress_engine.services.errors import BatchFatalError
from progress_engine.services.expiry_job import ExpiryJob
from progress_engine.services.notifications import NotificationFanout
from tests.conftest import DAY, T0, FixedClock, make_asset, make_version

S = LifecycleStatus


# ---------------------------------------------------------------------------
# Failure-injecting stores
# ---------------------------------------------------------------------------


class FailingScanStore(InMemoryContentStore):
    """Serves ``pages_before_failure`` pages, then raises."""

    pages_before_failure = 0

    async def scan(self, filter):
        served = 0
        async for page in super().scan(filter):
            if served >= self.pages_before_failure:
                raise RuntimeError("scan timed out")
            yield page
            served += 1


class FailingUpdateStore(InMemoryContentStore):
    """Raises on update for ids in ``broken``; reports a conflict for ``stale``."""

    broken: frozenset[str] = frozenset()
    stale: frozenset[str] = frozenset()

    async def conditional_update(self, record_id, expected_status, updated):
        if record_id in self.broken:
            raise RuntimeError("write rejected")
        if record_id in self.stale:
            return False
        return await super().conditional_update(record_id, expected_status, updated)


class FailingAccessHistory(InMemoryAccessHistory):
    async def users_who_accessed(self, item_id, lookback_days, now):
        raise RuntimeError("analytics unavailable")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _seed(content: InMemoryContentStore) -> None:
    async def go() -> None:
        await content.add_asset(make_asset(current="ver-2"))
        await content.add_version(make_version("ver-1", number=1, status=S.PUBLISHED))
        await content.add_version(
            make_version("ver-2", number=2, status=S.PUBLISHED, expire_at=T0 - DAY)
        )
        for item in (
            ContentItem("c-due", "Onboarding FAQ", S.PUBLISHED, T0 - 1, "CRM", "Contacts"),
            ContentItem("c-draft", "Draft FAQ", S.DRAFT, T0 - 1, "CRM", "Contacts"),
            ContentItem("c-future", "Future FAQ", S.PUBLISHED, T0 + DAY, "CRM", "Contacts"),
            ContentItem("c-forever", "Evergreen FAQ", S.PUBLISHED, None, "CRM", "Contacts"),
            ContentItem("c-old", "Old FAQ", S.EXPIRED, T0 - 5 * DAY, "CRM", "Contacts"),
        ):
            await content.add_item(item)

    asyncio.run(go())


def _subscriptions() -> InMemorySubscriptionRepo:
    repo = InMemorySubscriptionRepo()

    async def go() -> None:
        await repo.add(
            Subscription.new(user_id="alice", product_suite="CRM", product_concept="Contacts")
        )
        await repo.add(Subscription.new(user_id="bob", product_suite="ERP"))
        await repo.add(
            Subscription.new(
                user_id="carol",
                product_suite="CRM",
                product_concept="Contacts",
                triggers=SubscriptionTriggers(expired=False),
            )
        )

    asyncio.run(go())
    return repo


def _access(history: InMemoryAccessHistory) -> InMemoryAccessHistory:
    async def go() -> None:
        await history.record(AccessEvent("asset-1", "dave", T0 - 2 * DAY))
        await history.record(AccessEvent("asset-1", "erin", T0 - 40 * DAY))

    asyncio.run(go())
    return history


class Harness:
    def __init__(
        self,
        content: InMemoryContentStore | None = None,
        access: InMemoryAccessHistory | None = None,
    ) -> None:
        self.content = content or InMemoryContentStore()
        _seed(self.content)
        self.notifications = InMemoryNotificationRepo()
        self.job = ExpiryJob(
            self.content,
            _subscriptions(),
            _access(access or InMemoryAccessHistory()),
            NotificationFanout(self.notifications, clock=FixedClock(T0)),
            ExpiryJobConfig(page_size=1),
        )

    def run(self, now: int = T0):
        return asyncio.run(self.job.run(now))

    def inbox(self, user_id: str):
        return asyncio.run(self.notifications.list_for_user(user_id))


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


def test_expires_due_records_and_skips_the_rest() -> None:
    h = Harness()
    summary = h.run()

    assert summary.scanned == 7
    assert summary.expired == 2
    assert summary.skipped == 5
    assert summary.errors == 0
    assert summary.lookup_failures == 0
    assert h.content.versions["ver-2"].status is S.EXPIRED
    assert h.content.versions["ver-2"].updated_at == T0
    assert h.content.items["c-due"].status is S.EXPIRED
    assert h.content.items["c-draft"].status is S.DRAFT
    assert h.content.items["c-future"].status is S.PUBLISHED
    assert h.content.items["c-forever"].status is S.PUBLISHED


def test_expired_current_version_hands_pointer_to_fallback() -> None:
    h = Harness()
    h.run()
    assert h.content.assets["asset-1"].current_published_version_id == "ver-1"


def test_pointer_cleared_when_no_other_published_version() -> None:
    content = InMemoryContentStore()
    h = Harness(content)
    content.versions["ver-1"] = make_version("ver-1", status=S.DEPRECATED)
    h.run()
    assert content.assets["asset-1"].current_published_version_id is None


def test_recipients_are_matching_subscribers_and_recent_accessors() -> None:
    h = Harness()
    summary = h.run()

    # ver-2: alice (subscription) + dave (download); c-due: alice.
    assert summary.notified == 3
    alice = {n.notification_id for n in h.inbox("alice")}
    assert alice == {"expired:ver-2:alice", "expired:c-due:alice"}
    assert [n.notification_id for n in h.inbox("dave")] == ["expired:ver-2:dave"]
    # Unrelated filter, disabled trigger, stale download.
    assert h.inbox("bob") == []
    assert h.inbox("carol") == []
    assert h.inbox("erin") == []


def test_notification_content() -> None:
    h = Harness()
    h.run()
    by_id = {n.notification_id: n for n in h.inbox("alice")}

    version_note = by_id["expired:ver-2:alice"]
    assert version_note.title == "Content expired"
    assert version_note.message == 'Version 2 of "Pricing deck" has expired.'
    assert version_note.type == "warning"
    assert version_note.item_id == "ver-2"
    assert version_note.created_at == T0

    item_note = by_id["expired:c-due:alice"]
    assert item_note.message == 'The content "Onboarding FAQ" has expired.'


def test_rerun_is_idempotent() -> None:
    h = Harness()
    h.run()
    again = h.run()

    assert again.expired == 0
    assert again.notified == 0
    assert again.skipped == again.scanned == 7
    assert len(h.inbox("alice")) == 2


def test_expiry_boundary_is_inclusive() -> None:
    h = Harness()
    summary = h.run(now=T0 - DAY)
    # ver-2 expires exactly at T0 - DAY; c-due is still in the future.
    assert summary.expired == 1
    assert h.content.items["c-due"].status is S.PUBLISHED


def test_expired_items_counted_in_metrics() -> None:
    labels = {"job": "expiry", "outcome": "expired"}
    before = REGISTRY.get_sample_value("content_job_items_total", labels) or 0.0
    Harness().run()
    after = REGISTRY.get_sample_value("content_job_items_total", labels)
    assert after - before == 2


def test_summary_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="progress_engine.services.expiry_job"):
        Harness().run()
    assert any(
        "scanned=7 expired=2" in r.getMessage() and r.job == "expiry"  # type: ignore[attr-defined]
        for r in caplog.records
    )


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


def test_first_page_failure_is_fatal() -> None:
    h = Harness(FailingScanStore())
    with pytest.raises(BatchFatalError, match="scan timed out"):
        h.run()


def test_later_page_failure_stops_the_run_and_is_reported() -> None:
    content = FailingScanStore()
    content.pages_before_failure = 1
    h = Harness(content)

    summary = h.run()

    assert summary.scanned == 1
    assert summary.expired == 0
    assert summary.errors == 1
    assert any("scan aborted" in d for d in summary.error_details)


def test_write_failure_is_isolated_to_its_item() -> None:
    content = FailingUpdateStore()
    content.broken = frozenset({"ver-2"})
    h = Harness(content)

    summary = h.run()

    assert summary.errors == 1
    assert summary.expired == 1
    assert any(d.startswith("ver-2:") for d in summary.error_details)
    assert content.versions["ver-2"].status is S.PUBLISHED
    assert content.items["c-due"].status is S.EXPIRED
    assert h.inbox("dave") == []


def test_concurrent_change_counts_as_skipped() -> None:
    content = FailingUpdateStore()
    content.stale = frozenset({"c-due"})
    h = Harness(content)

    summary = h.run()

    assert summary.errors == 0
    assert summary.expired == 1
    assert summary.skipped == 6
    assert "expired:c-due:alice" not in {n.notification_id for n in h.inbox("alice")}


def test_access_history_failure_still_notifies_subscribers() -> None:
    h = Harness(access=FailingAccessHistory())

    summary = h.run()

    assert summary.expired == 2
    assert summary.lookup_failures == 2
    assert summary.errors == 0
    assert len(h.inbox("alice")) == 2
    assert h.inbox("dave") == []


def test_subscription_failure_still_notifies_recent_accessors() -> None:
    class FailingSubscriptions(InMemorySubscriptionRepo):
        async def list_all(self):
            raise RuntimeError("subscription table locked")

    h = Harness()
    h.job = ExpiryJob(
        h.content,
        FailingSubscriptions(),
        _access(InMemoryAccessHistory()),
        NotificationFanout(h.notifications, clock=FixedClock(T0)),
        ExpiryJobConfig(page_size=1),
    )

    summary = h.run()

    assert summary.expired == 2
    assert summary.lookup_failures == 2
    assert summary.errors == 0
    assert sum("subscription table locked" in d for d in summary.error_details) == 2
    assert [n.notification_id for n in h.inbox("dave")] == ["expired:ver-2:dave"]
    assert h.inbox("alice") == []
