from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import progress_engine` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from progress_engine.main import app  # noqa: E402
from progress_engine.models.content import (  # noqa: E402
    Asset,
    AssetVersion,
    LifecycleStatus,
)
from progress_engine.repos import stores  # noqa: E402
from progress_engine.services.task_queue import task_queue  # noqa: E402

# Fixed clock for deterministic timestamps (2023-11-14T22:13:20Z).
T0 = 1_700_000_000
DAY = 86_400


@pytest.fixture(autouse=True)
def reset_stores() -> None:
    """Fresh in-memory repositories for every test."""
    stores.reset_memory_stores()


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def mem(reset_stores: None) -> stores.Stores:
    return stores.memory_stores


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class FixedClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Content helpers
# ---------------------------------------------------------------------------


def make_asset(
    asset_id: str = "asset-1",
    *,
    title: str = "Pricing deck",
    product_suite: str | None = "CRM",
    product_concept: str | None = "Contacts",
    tags: tuple[str, ...] = (),
    current: str | None = None,
) -> Asset:
    return Asset(
        asset_id=asset_id,
        title=title,
        product_suite=product_suite,
        product_concept=product_concept,
        tags=tags,
        current_published_version_id=current,
    )


def make_version(
    version_id: str,
    *,
    asset_id: str = "asset-1",
    number: int = 1,
    status: LifecycleStatus = LifecycleStatus.DRAFT,
    expire_at: int | None = None,
    publish_at: int | None = None,
) -> AssetVersion:
    return AssetVersion(
        version_id=version_id,
        asset_id=asset_id,
        version_number=number,
        status=status,
        expire_at=expire_at,
        publish_at=publish_at,
        created_at=T0 - 10 * DAY,
        updated_at=T0 - 10 * DAY,
    )
