"""PostgreSQL implementation of NotificationRepo."""

from __future__ import annotations

import asyncio

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.db.tables import NotificationRow
from progress_engine.models.notification import Notification


class PgNotificationRepo:
    """Fanout calls this concurrently; one AsyncSession allows a single
    in-flight statement, so access is serialized."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._lock = asyncio.Lock()

    async def get(self, notification_id: str) -> Notification | None:
        async with self._lock:
            return await self._get(notification_id)

    async def _get(self, notification_id: str) -> Notification | None:
        row = await self._session.get(NotificationRow, notification_id)
        return _row_to_notification(row) if row is not None else None

    async def create_if_absent(
        self, notification: Notification
    ) -> tuple[Notification, bool]:
        stmt = (
            insert(NotificationRow)
            .values(
                id=notification.notification_id,
                user_id=notification.user_id,
                type=notification.type,
                title=notification.title,
                message=notification.message,
                item_id=notification.item_id,
                read=notification.read,
                created_at=notification.created_at,
            )
            .on_conflict_do_nothing(index_elements=["id"])
        )
        async with self._lock:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
            if result.rowcount == 1:
                return notification, True
            existing = await self._get(notification.notification_id)
        return existing or notification, False

    async def list_for_user(self, user_id: str) -> list[Notification]:
        stmt = (
            select(NotificationRow)
            .where(NotificationRow.user_id == user_id)
            .order_by(NotificationRow.created_at.desc(), NotificationRow.id)
        )
        async with self._lock:
            rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_notification(r) for r in rows]


def _row_to_notification(row: NotificationRow) -> Notification:
    return Notification(
        notification_id=row.id,
        user_id=row.user_id,
        title=row.title,
        message=row.message,
        created_at=row.created_at,
        item_id=row.item_id,
        type=row.type,
        read=row.read,
    )
