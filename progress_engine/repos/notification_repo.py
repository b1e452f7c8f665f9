from __future__ import annotations

from typing import Protocol

from progress_engine.models.notification import Notification


class NotificationRepo(Protocol):
    async def get(self, notification_id: str) -> Notification | None: ...
    async def create_if_absent(
        self, notification: Notification
    ) -> tuple[Notification, bool]: ...
    async def list_for_user(self, user_id: str) -> list[Notification]: ...


class InMemoryNotificationRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Notification] = {}

    async def get(self, notification_id: str) -> Notification | None:
        return self._by_id.get(notification_id)

    async def create_if_absent(
        self, notification: Notification
    ) -> tuple[Notification, bool]:
        existing = self._by_id.get(notification.notification_id)
        if existing is not None:
            return existing, False
        self._by_id[notification.notification_id] = notification
        return notification, True

    async def list_for_user(self, user_id: str) -> list[Notification]:
        found = [n for n in self._by_id.values() if n.user_id == user_id]
        return sorted(found, key=lambda n: (-n.created_at, n.notification_id))
