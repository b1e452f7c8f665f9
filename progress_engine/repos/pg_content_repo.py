"""PostgreSQL implementation of ContentStore.

Scans use keyset pagination on the primary key so records updated by the
consumer between pages are neither skipped nor repeated.  Status writes
are ``UPDATE ... WHERE status = :expected``; a zero rowcount means another
writer got there first.  Each write runs in a savepoint so one failed
statement does not poison the rest of a job run's transaction.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.db.tables import AssetRow, AssetVersionRow, ContentItemRow
from progress_engine.models.content import (
    Asset,
    AssetVersion,
    ContentItem,
    ContentRecord,
    LifecycleStatus,
    RecordKind,
)
from progress_engine.repos.content_repo import ScanFilter

_ROWS = {
    RecordKind.ASSET_VERSION: AssetVersionRow,
    RecordKind.CONTENT_ITEM: ContentItemRow,
}


class PgContentStore:
    """Satisfies the ContentStore Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def scan(self, filter: ScanFilter) -> AsyncIterator[list[ContentRecord]]:
        for kind in RecordKind:
            if kind not in filter.kinds:
                continue
            row_cls = _ROWS[kind]
            last_id: str | None = None
            while True:
                stmt = select(row_cls).order_by(row_cls.id).limit(filter.page_size)
                if filter.statuses is not None:
                    stmt = stmt.where(
                        row_cls.status.in_([s.value for s in filter.statuses])
                    )
                if last_id is not None:
                    stmt = stmt.where(row_cls.id > last_id)
                rows = (await self._session.execute(stmt)).scalars().all()
                if not rows:
                    break
                yield [_row_to_record(r) for r in rows]
                if len(rows) < filter.page_size:
                    break
                last_id = rows[-1].id

    async def conditional_update(
        self,
        record_id: str,
        expected_status: LifecycleStatus,
        updated: ContentRecord,
    ) -> bool:
        row_cls = _ROWS[updated.kind]
        stmt = (
            update(row_cls)
            .where(row_cls.id == record_id, row_cls.status == expected_status.value)
            .values(**_mutable_values(updated))
            .execution_options(synchronize_session=False)
        )
        async with self._session.begin_nested():
            result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def get_asset(self, asset_id: str) -> Asset | None:
        row = await self._session.get(AssetRow, asset_id, populate_existing=True)
        if row is None:
            return None
        return Asset(
            asset_id=row.id,
            title=row.title,
            product_suite=row.product_suite,
            product_concept=row.product_concept,
            tags=tuple(row.tags or ()),
            current_published_version_id=row.current_published_version_id,
            updated_at=row.updated_at,
        )

    async def get_version(self, version_id: str) -> AssetVersion | None:
        row = await self._session.get(AssetVersionRow, version_id, populate_existing=True)
        return _row_to_version(row) if row is not None else None

    async def latest_published_version(
        self, asset_id: str, *, exclude: str | None = None
    ) -> AssetVersion | None:
        stmt = select(AssetVersionRow).where(
            AssetVersionRow.asset_id == asset_id,
            AssetVersionRow.status == LifecycleStatus.PUBLISHED.value,
        )
        if exclude is not None:
            stmt = stmt.where(AssetVersionRow.id != exclude)
        stmt = stmt.order_by(AssetVersionRow.version_number.desc()).limit(1)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_version(row) if row is not None else None

    async def set_current_version(
        self, asset_id: str, expected: str | None, version_id: str | None, now: int
    ) -> bool:
        pointer = AssetRow.current_published_version_id
        stmt = (
            update(AssetRow)
            .where(
                AssetRow.id == asset_id,
                pointer.is_(None) if expected is None else pointer == expected,
            )
            .values(current_published_version_id=version_id, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        async with self._session.begin_nested():
            result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def add_asset(self, asset: Asset) -> None:
        self._session.add(
            AssetRow(
                id=asset.asset_id,
                title=asset.title,
                product_suite=asset.product_suite,
                product_concept=asset.product_concept,
                tags=list(asset.tags),
                current_published_version_id=asset.current_published_version_id,
                updated_at=asset.updated_at,
            )
        )
        await self._session.flush()

    async def add_version(self, version: AssetVersion) -> None:
        self._session.add(
            AssetVersionRow(
                id=version.version_id,
                asset_id=version.asset_id,
                version_number=version.version_number,
                created_at=version.created_at,
                **_mutable_values(version),
            )
        )
        await self._session.flush()

    async def add_item(self, item: ContentItem) -> None:
        self._session.add(
            ContentItemRow(id=item.content_id, title=item.title, **_mutable_values(item))
        )
        await self._session.flush()


def _mutable_values(record: ContentRecord) -> dict:
    if isinstance(record, AssetVersion):
        return {
            "status": record.status.value,
            "publish_at": record.publish_at,
            "expire_at": record.expire_at,
            "published_at": record.published_at,
            "published_by": record.published_by,
            "change_log": record.change_log,
            "updated_at": record.updated_at,
        }
    return {
        "status": record.status.value,
        "expiry_date": record.expiry_date,
        "product_suite": record.product_suite,
        "product_concept": record.product_concept,
        "tags": list(record.tags),
        "updated_at": record.updated_at,
    }


def _row_to_version(row: AssetVersionRow) -> AssetVersion:
    return AssetVersion(
        version_id=row.id,
        asset_id=row.asset_id,
        version_number=row.version_number,
        status=LifecycleStatus(row.status),
        publish_at=row.publish_at,
        expire_at=row.expire_at,
        published_at=row.published_at,
        published_by=row.published_by,
        change_log=row.change_log,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_record(row: AssetVersionRow | ContentItemRow) -> ContentRecord:
    if isinstance(row, AssetVersionRow):
        return _row_to_version(row)
    return ContentItem(
        content_id=row.id,
        title=row.title,
        status=LifecycleStatus(row.status),
        expiry_date=row.expiry_date,
        product_suite=row.product_suite,
        product_concept=row.product_concept,
        tags=tuple(row.tags or ()),
        updated_at=row.updated_at,
    )
