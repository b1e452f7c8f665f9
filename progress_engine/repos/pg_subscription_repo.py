"""PostgreSQL implementations of SubscriptionRepo and AccessHistory."""

from __future__ import annotations

import dataclasses

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.core.clock import SECONDS_PER_DAY
from progress_engine.db.tables import AccessEventRow, SubscriptionRow
from progress_engine.models.subscription import (
    AccessEvent,
    Subscription,
    SubscriptionTriggers,
)

_TRIGGER_FIELDS = frozenset(f.name for f in dataclasses.fields(SubscriptionTriggers))


class PgSubscriptionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, subscription: Subscription) -> None:
        self._session.add(
            SubscriptionRow(
                id=subscription.subscription_id,
                user_id=subscription.user_id,
                product_suite=subscription.product_suite,
                product_concept=subscription.product_concept,
                tags=list(subscription.tags),
                triggers=dataclasses.asdict(subscription.triggers),
                created_at=subscription.created_at,
            )
        )
        await self._session.flush()

    async def list_all(self) -> list[Subscription]:
        rows = (await self._session.execute(select(SubscriptionRow))).scalars().all()
        return [
            Subscription(
                subscription_id=row.id,
                user_id=row.user_id,
                product_suite=row.product_suite,
                product_concept=row.product_concept,
                tags=tuple(row.tags or ()),
                # Unknown keys from older rows are ignored; missing ones default.
                triggers=SubscriptionTriggers(
                    **{k: bool(v) for k, v in (row.triggers or {}).items() if k in _TRIGGER_FIELDS}
                ),
                created_at=row.created_at,
            )
            for row in rows
        ]


class PgAccessHistory:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, event: AccessEvent) -> None:
        self._session.add(
            AccessEventRow(
                item_id=event.item_id,
                user_id=event.user_id,
                kind=event.kind,
                occurred_at=event.occurred_at,
            )
        )
        await self._session.flush()

    async def users_who_accessed(
        self, item_id: str, lookback_days: int, now: int
    ) -> set[str]:
        stmt = (
            select(AccessEventRow.user_id)
            .where(
                AccessEventRow.item_id == item_id,
                AccessEventRow.occurred_at >= now - lookback_days * SECONDS_PER_DAY,
                AccessEventRow.occurred_at <= now,
            )
            .distinct()
        )
        return set((await self._session.execute(stmt)).scalars().all())
