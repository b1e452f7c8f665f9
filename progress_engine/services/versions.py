"""Persisted lifecycle operations for asset versions.

Wraps the pure state machine in ``lifecycle`` with the content store:
every write is a conditional update on the status the version was read
in, and the owning asset's ``current_published_version_id`` is kept
pointing at a published version (or at nothing).

RACES
-----
An editor and the scheduled jobs can act on the same version at once.
The status precondition makes the loser's write a no-op, reported as
PersistenceConflictError; the HTTP layer turns that into a 409 and the
jobs count it as a skip.  The asset pointer is compare-and-set on its old
value, so a pointer someone else already moved is left alone.

``set_expire_at`` is not a transition.  It only rewrites the timestamp
the expiry job reads, but it goes through the same conditional write so
it cannot resurrect a version archived in the meantime.
"""

from __future__ import annotations

import logging

from progress_engine.core.clock import Clock, utc_now
from progress_engine.models.content import AssetVersion, LifecycleStatus
from progress_engine.repos.content_repo import ContentStore
from progress_engine.services import lifecycle
from progress_engine.services.errors import (
    PersistenceConflictError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)


async def release_asset_pointer(
    content: ContentStore, version: AssetVersion, now: int
) -> str | None:
    """Move the asset pointer off ``version`` if it currently points at it.

    Falls back to the latest other published version of the asset.
    Returns the pointer's value afterwards (None when unchanged or cleared).
    """
    asset = await content.get_asset(version.asset_id)
    if asset is None or asset.current_published_version_id != version.version_id:
        return None
    fallback = await content.latest_published_version(
        version.asset_id, exclude=version.version_id
    )
    fallback_id = fallback.version_id if fallback else None
    moved = await content.set_current_version(
        version.asset_id, version.version_id, fallback_id, now
    )
    if not moved:
        logger.info(
            "Asset pointer changed concurrently, leaving it as is",
            extra={"item_id": version.version_id},
        )
        return None
    logger.info(
        "Asset %s now points at %s", version.asset_id, fallback_id,
        extra={"item_id": version.version_id},
    )
    return fallback_id


class VersionService:
    def __init__(self, content: ContentStore, clock: Clock = utc_now) -> None:
        self._content = content
        self._clock = clock

    async def get(self, version_id: str) -> AssetVersion:
        version = await self._content.get_version(version_id)
        if version is None:
            raise RecordNotFoundError("version", version_id)
        return version

    async def _save(self, before: AssetVersion, after: AssetVersion) -> AssetVersion:
        ok = await self._content.conditional_update(
            before.version_id, before.status, after
        )
        if not ok:
            raise PersistenceConflictError(before.version_id, before.status.value)
        logger.info(
            "Version %s: %s -> %s", before.version_id, before.status, after.status,
            extra={"item_id": before.version_id},
        )
        return after

    async def schedule(
        self, version_id: str, publish_at: int, *, now: int | None = None
    ) -> AssetVersion:
        version = await self.get(version_id)
        ts = now if now is not None else self._clock()
        return await self._save(version, lifecycle.schedule(version, publish_at, now=ts))

    async def publish(
        self,
        version_id: str,
        published_by: str,
        change_log: str | None = None,
        *,
        now: int | None = None,
    ) -> AssetVersion:
        """Publish a version, repoint its asset and deprecate the old current one."""
        version = await self.get(version_id)
        asset = await self._content.get_asset(version.asset_id)
        if asset is None:
            raise RecordNotFoundError("asset", version.asset_id)
        ts = now if now is not None else self._clock()

        previous = None
        if asset.current_published_version_id:
            previous = await self._content.get_version(asset.current_published_version_id)

        published, repointed, deprecated = lifecycle.publish_for_asset(
            asset,
            version,
            previous,
            published_by=published_by,
            change_log=change_log,
            now=ts,
        )
        await self._save(version, published)

        if deprecated is not None and previous is not None:
            if not await self._content.conditional_update(
                previous.version_id, LifecycleStatus.PUBLISHED, deprecated
            ):
                logger.warning(
                    "Previous version changed before it could be deprecated",
                    extra={"item_id": previous.version_id},
                )

        if not await self._content.set_current_version(
            asset.asset_id,
            asset.current_published_version_id,
            repointed.current_published_version_id,
            ts,
        ):
            logger.warning(
                "Asset %s pointer changed concurrently; not repointed",
                asset.asset_id,
                extra={"item_id": version.version_id},
            )
        return published

    async def set_expire_at(
        self, version_id: str, expire_at: int | None, *, now: int | None = None
    ) -> AssetVersion:
        version = await self.get(version_id)
        ts = now if now is not None else self._clock()
        return await self._save(version, lifecycle.set_expire_at(version, expire_at, now=ts))

    async def expire(self, version_id: str, *, now: int | None = None) -> AssetVersion:
        version = await self.get(version_id)
        ts = now if now is not None else self._clock()
        expired = await self._save(version, lifecycle.expire(version, now=ts))
        await release_asset_pointer(self._content, expired, ts)
        return expired

    async def deprecate(self, version_id: str, *, now: int | None = None) -> AssetVersion:
        version = await self.get(version_id)
        ts = now if now is not None else self._clock()
        deprecated = await self._save(version, lifecycle.deprecate(version, now=ts))
        await release_asset_pointer(self._content, deprecated, ts)
        return deprecated

    async def archive(self, version_id: str, *, now: int | None = None) -> AssetVersion:
        version = await self.get(version_id)
        ts = now if now is not None else self._clock()
        archived = await self._save(version, lifecycle.archive(version, now=ts))
        await release_asset_pointer(self._content, archived, ts)
        return archived
