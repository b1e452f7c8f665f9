"""Content store contract: assets, their versions, and legacy content items."""

from __future__ import annotations

import dataclasses
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Protocol

from progress_engine.models.content import (
    Asset,
    AssetVersion,
    ContentItem,
    ContentRecord,
    LifecycleStatus,
    RecordKind,
)


@dataclass(frozen=True, slots=True)
class ScanFilter:
    kinds: frozenset[RecordKind] = frozenset(RecordKind)
    statuses: frozenset[LifecycleStatus] | None = None  # None = any status
    page_size: int = 100


class ContentStore(Protocol):
    def scan(self, filter: ScanFilter) -> AsyncIterator[list[ContentRecord]]: ...
    async def conditional_update(
        self,
        record_id: str,
        expected_status: LifecycleStatus,
        updated: ContentRecord,
    ) -> bool: ...
    async def get_asset(self, asset_id: str) -> Asset | None: ...
    async def get_version(self, version_id: str) -> AssetVersion | None: ...
    async def latest_published_version(
        self, asset_id: str, *, exclude: str | None = None
    ) -> AssetVersion | None: ...
    async def set_current_version(
        self, asset_id: str, expected: str | None, version_id: str | None, now: int
    ) -> bool: ...
    async def add_asset(self, asset: Asset) -> None: ...
    async def add_version(self, version: AssetVersion) -> None: ...
    async def add_item(self, item: ContentItem) -> None: ...


@dataclass
class InMemoryContentStore:
    """Dict-backed store; records are kept in insertion order for scans."""

    assets: dict[str, Asset] = field(default_factory=dict)
    versions: dict[str, AssetVersion] = field(default_factory=dict)
    items: dict[str, ContentItem] = field(default_factory=dict)

    def _table(self, kind: RecordKind) -> dict:
        return self.versions if kind is RecordKind.ASSET_VERSION else self.items

    async def scan(self, filter: ScanFilter) -> AsyncIterator[list[ContentRecord]]:
        for kind in RecordKind:
            if kind not in filter.kinds:
                continue
            # Snapshot ids so updates made by the consumer between pages
            # do not disturb iteration.
            ids = list(self._table(kind))
            page: list[ContentRecord] = []
            for record_id in ids:
                record = self._table(kind).get(record_id)
                if record is None:
                    continue
                if filter.statuses is not None and record.status not in filter.statuses:
                    continue
                page.append(record)
                if len(page) >= filter.page_size:
                    yield page
                    page = []
            if page:
                yield page

    async def conditional_update(
        self,
        record_id: str,
        expected_status: LifecycleStatus,
        updated: ContentRecord,
    ) -> bool:
        table = self._table(updated.kind)
        current = table.get(record_id)
        if current is None or current.status != expected_status:
            return False
        table[record_id] = updated
        return True

    async def get_asset(self, asset_id: str) -> Asset | None:
        return self.assets.get(asset_id)

    async def get_version(self, version_id: str) -> AssetVersion | None:
        return self.versions.get(version_id)

    async def latest_published_version(
        self, asset_id: str, *, exclude: str | None = None
    ) -> AssetVersion | None:
        candidates = [
            v
            for v in self.versions.values()
            if v.asset_id == asset_id
            and v.status is LifecycleStatus.PUBLISHED
            and v.version_id != exclude
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda v: v.version_number)

    async def set_current_version(
        self, asset_id: str, expected: str | None, version_id: str | None, now: int
    ) -> bool:
        asset = self.assets.get(asset_id)
        if asset is None or asset.current_published_version_id != expected:
            return False
        self.assets[asset_id] = dataclasses.replace(
            asset, current_published_version_id=version_id, updated_at=now
        )
        return True

    async def add_asset(self, asset: Asset) -> None:
        self.assets[asset.asset_id] = asset

    async def add_version(self, version: AssetVersion) -> None:
        self.versions[version.version_id] = version

    async def add_item(self, item: ContentItem) -> None:
        self.items[item.content_id] = item
