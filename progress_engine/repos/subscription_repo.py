from __future__ import annotations

from typing import Protocol

from progress_engine.core.clock import SECONDS_PER_DAY
from progress_engine.models.subscription import AccessEvent, Subscription


class SubscriptionRepo(Protocol):
    async def add(self, subscription: Subscription) -> None: ...
    async def list_all(self) -> list[Subscription]: ...


class AccessHistory(Protocol):
    async def record(self, event: AccessEvent) -> None: ...
    async def users_who_accessed(
        self, item_id: str, lookback_days: int, now: int
    ) -> set[str]: ...


class InMemorySubscriptionRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Subscription] = {}

    async def add(self, subscription: Subscription) -> None:
        self._by_id[subscription.subscription_id] = subscription

    async def list_all(self) -> list[Subscription]:
        return list(self._by_id.values())


class InMemoryAccessHistory:
    def __init__(self) -> None:
        self._events: list[AccessEvent] = []

    async def record(self, event: AccessEvent) -> None:
        self._events.append(event)

    async def users_who_accessed(
        self, item_id: str, lookback_days: int, now: int
    ) -> set[str]:
        since = now - lookback_days * SECONDS_PER_DAY
        return {
            e.user_id
            for e in self._events
            if e.item_id == item_id and since <= e.occurred_at <= now
        }
