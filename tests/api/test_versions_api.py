from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from progress_engine.models.content import LifecycleStatus
from progress_engine.models.subscription import Subscription
from progress_engine.repos.stores import Stores
from tests.conftest import T0, make_asset, make_version


@pytest.fixture
def seeded(mem: Stores) -> Stores:
    async def go() -> None:
        await mem.content.add_asset(make_asset(current="ver-1"))
        await mem.content.add_version(
            make_version("ver-1", status=LifecycleStatus.PUBLISHED)
        )
        await mem.content.add_version(make_version("ver-2", number=2))

    asyncio.run(go())
    return mem


def test_get_version(client: TestClient, seeded: Stores) -> None:
    resp = client.get("/v1/versions/ver-1")
    assert resp.status_code == 200
    assert resp.json()["status"] == "published"


def test_get_missing_version(client: TestClient, seeded: Stores) -> None:
    resp = client.get("/v1/versions/nope")
    assert resp.status_code == 404


def test_publish_flow(client: TestClient, seeded: Stores) -> None:
    resp = client.post(
        "/v1/versions/ver-2/publish",
        json={"published_by": "editor-1", "change_log": "Q3 prices"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "published"
    assert body["published_by"] == "editor-1"
    assert body["change_log"] == "Q3 prices"
    assert seeded.content.versions["ver-1"].status is LifecycleStatus.DEPRECATED
    assert seeded.content.assets["asset-1"].current_published_version_id == "ver-2"


def test_schedule(client: TestClient, seeded: Stores) -> None:
    resp = client.post("/v1/versions/ver-2/schedule", json={"publish_at": T0})
    assert resp.status_code == 200
    assert resp.json()["publish_at"] == T0


@pytest.mark.parametrize("op", ["expire", "deprecate", "archive"])
def test_retire_operations(client: TestClient, seeded: Stores, op: str) -> None:
    resp = client.post(f"/v1/versions/ver-1/{op}")
    assert resp.status_code == 200
    assert seeded.content.assets["asset-1"].current_published_version_id is None


def test_invalid_transition_is_409(client: TestClient, seeded: Stores) -> None:
    resp = client.post("/v1/versions/ver-2/expire")
    assert resp.status_code == 409
    detail = resp.json()["detail"]
    assert detail["current_status"] == "draft"
    assert detail["operation"] == "expire"
    assert seeded.content.versions["ver-2"].status is LifecycleStatus.DRAFT


def test_publish_requires_actor(client: TestClient, seeded: Stores) -> None:
    resp = client.post("/v1/versions/ver-2/publish", json={"published_by": ""})
    assert resp.status_code == 422


def test_manual_publish_notifies_subscribers(client: TestClient, seeded: Stores) -> None:
    async def subscribe() -> None:
        await seeded.subscriptions.add(
            Subscription.new(user_id="alice", product_suite="CRM", product_concept="Contacts")
        )
        await seeded.subscriptions.add(Subscription.new(user_id="bob", product_suite="ERP"))

    asyncio.run(subscribe())

    resp = client.post("/v1/versions/ver-2/publish", json={"published_by": "editor-1"})
    assert resp.status_code == 200

    inbox = client.get("/v1/notifications", params={"user_id": "alice"}).json()
    assert [n["notification_id"] for n in inbox] == ["new_version:ver-2:alice"]
    assert inbox[0]["message"] == 'Version 2 of "Pricing deck" is now available.'
    assert client.get("/v1/notifications", params={"user_id": "bob"}).json() == []


def test_publish_succeeds_when_subscribers_cannot_be_read(
    client: TestClient, seeded: Stores, monkeypatch
) -> None:
    async def broken():
        raise RuntimeError("subscriptions unavailable")

    monkeypatch.setattr(seeded.subscriptions, "list_all", broken)

    resp = client.post("/v1/versions/ver-2/publish", json={"published_by": "editor-1"})
    assert resp.status_code == 200
    assert seeded.content.versions["ver-2"].status is LifecycleStatus.PUBLISHED


def test_set_and_clear_expire_at(client: TestClient, seeded: Stores) -> None:
    resp = client.post("/v1/versions/ver-1/expire-at", json={"expire_at": T0})
    assert resp.status_code == 200
    assert resp.json()["expire_at"] == T0
    assert resp.json()["status"] == "published"
    assert seeded.content.versions["ver-1"].expire_at == T0

    resp = client.post("/v1/versions/ver-1/expire-at", json={"expire_at": None})
    assert resp.status_code == 200
    assert resp.json()["expire_at"] is None


def test_expire_at_on_archived_version_is_409(client: TestClient, seeded: Stores) -> None:
    seeded.content.versions["ver-1"] = make_version("ver-1", status=LifecycleStatus.ARCHIVED)
    resp = client.post("/v1/versions/ver-1/expire-at", json={"expire_at": T0})
    assert resp.status_code == 409
    detail = resp.json()["detail"]
    assert detail["current_status"] == "archived"
    assert detail["operation"] == "set_expire_at"


def test_expire_at_on_missing_version_is_404(client: TestClient, seeded: Stores) -> None:
    resp = client.post("/v1/versions/nope/expire-at", json={"expire_at": T0})
    assert resp.status_code == 404
