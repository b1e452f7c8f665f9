from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from progress_engine.models.content import ContentItem, LifecycleStatus
from progress_engine.models.subscription import Subscription
from progress_engine.repos.stores import Stores
from progress_engine.services.task_queue import CONTENT_EXPIRY, SCHEDULED_PUBLISH, task_queue
from tests.conftest import T0, make_asset, make_version


@pytest.fixture
def seeded(mem: Stores) -> Stores:
    async def go() -> None:
        await mem.content.add_item(
            ContentItem(
                "c-1", "Onboarding FAQ", LifecycleStatus.PUBLISHED, T0 - 1, "CRM", "Contacts"
            )
        )
        await mem.content.add_asset(make_asset())
        await mem.content.add_version(
            make_version("ver-1", status=LifecycleStatus.SCHEDULED, publish_at=T0 - 1)
        )
        await mem.subscriptions.add(
            Subscription.new(user_id="alice", product_suite="CRM", product_concept="*")
        )

    asyncio.run(go())
    return mem


def test_expiry_runs_inline(client: TestClient, seeded: Stores) -> None:
    resp = client.post("/v1/jobs/expiry", params={"now": T0})
    assert resp.status_code == 200
    body = resp.json()
    assert body["expired"] == 1
    assert body["notified"] == 1
    assert body["errors"] == 0
    assert body["error_details"] == []

    inbox = client.get("/v1/notifications", params={"user_id": "alice"}).json()
    assert [n["notification_id"] for n in inbox] == ["expired:c-1:alice"]
    assert inbox[0]["type"] == "warning"
    assert inbox[0]["read"] is False


def test_expiry_rerun_is_a_noop(client: TestClient, seeded: Stores) -> None:
    client.post("/v1/jobs/expiry", params={"now": T0})
    body = client.post("/v1/jobs/expiry", params={"now": T0}).json()
    assert body["expired"] == 0
    assert body["notified"] == 0


def test_publish_runs_inline(client: TestClient, seeded: Stores) -> None:
    resp = client.post("/v1/jobs/publish", params={"now": T0})
    assert resp.status_code == 200
    assert resp.json()["published"] == 1
    assert seeded.content.versions["ver-1"].status is LifecycleStatus.PUBLISHED


@pytest.mark.parametrize(
    ("path", "queue"),
    [("/v1/jobs/expiry", CONTENT_EXPIRY), ("/v1/jobs/publish", SCHEDULED_PUBLISH)],
)
def test_background_trigger_enqueues(
    client: TestClient, seeded: Stores, path: str, queue: str
) -> None:
    resp = client.post(path, params={"background": "true", "now": T0})
    assert resp.status_code == 202
    body = resp.json()
    assert body["queue"] == queue

    task = asyncio.run(task_queue.dequeue(queue))
    assert task is not None
    assert task.id == body["task_id"]
    assert task.payload == {"now": T0}
    # Nothing ran inline.
    assert seeded.content.items["c-1"].status is LifecycleStatus.PUBLISHED


def test_scan_failure_is_503(client: TestClient, mem: Stores, monkeypatch) -> None:
    async def broken(filter):
        raise RuntimeError("db down")
        yield []  # pragma: no cover

    monkeypatch.setattr(mem.content, "scan", broken)
    resp = client.post("/v1/jobs/expiry", params={"now": T0})
    assert resp.status_code == 503
    assert "db down" in resp.json()["detail"]
