from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import uuid4


class LifecycleStatus(StrEnum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    DEPRECATED = "deprecated"
    EXPIRED = "expired"
    ARCHIVED = "archived"


class RecordKind(StrEnum):
    """Discriminator for records held in the content store."""

    ASSET_VERSION = "asset_version"
    CONTENT_ITEM = "content_item"


@dataclass(frozen=True, slots=True)
class Asset:
    asset_id: str
    title: str
    product_suite: str | None = None
    product_concept: str | None = None
    tags: tuple[str, ...] = ()
    current_published_version_id: str | None = None
    updated_at: int | None = None

    @staticmethod
    def new(
        *,
        title: str,
        product_suite: str | None = None,
        product_concept: str | None = None,
        tags: tuple[str, ...] = (),
    ) -> Asset:
        return Asset(
            asset_id=f"asset_{uuid4()}",
            title=title,
            product_suite=product_suite,
            product_concept=product_concept,
            tags=tags,
        )


@dataclass(frozen=True, slots=True)
class AssetVersion:
    """One revision of an asset; moves through the lifecycle state machine."""

    version_id: str
    asset_id: str
    version_number: int
    status: LifecycleStatus = LifecycleStatus.DRAFT
    publish_at: int | None = None
    expire_at: int | None = None
    published_at: int | None = None
    published_by: str | None = None
    change_log: str | None = None
    created_at: int | None = None
    updated_at: int | None = None

    kind = RecordKind.ASSET_VERSION

    @property
    def record_id(self) -> str:
        return self.version_id

    @property
    def expires_at(self) -> int | None:
        return self.expire_at

    @property
    def access_key(self) -> str:
        # Downloads and citations are recorded against the asset, not the revision.
        return self.asset_id

    @staticmethod
    def new(
        *,
        asset_id: str,
        version_number: int,
        created_at: int,
        expire_at: int | None = None,
    ) -> AssetVersion:
        return AssetVersion(
            version_id=f"ver_{uuid4()}",
            asset_id=asset_id,
            version_number=version_number,
            expire_at=expire_at,
            created_at=created_at,
            updated_at=created_at,
        )


@dataclass(frozen=True, slots=True)
class ContentItem:
    """Legacy content-registry record with its own expiry date."""

    content_id: str
    title: str
    status: LifecycleStatus = LifecycleStatus.DRAFT
    expiry_date: int | None = None
    product_suite: str | None = None
    product_concept: str | None = None
    tags: tuple[str, ...] = ()
    updated_at: int | None = None

    kind = RecordKind.CONTENT_ITEM

    @property
    def record_id(self) -> str:
        return self.content_id

    @property
    def expires_at(self) -> int | None:
        return self.expiry_date

    @property
    def access_key(self) -> str:
        return self.content_id


ContentRecord = AssetVersion | ContentItem
