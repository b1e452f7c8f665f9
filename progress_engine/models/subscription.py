from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4

WILDCARD = "*"


@dataclass(frozen=True, slots=True)
class SubscriptionTriggers:
    new_version: bool = True
    expiring_soon: bool = True
    expired: bool = True
    comments: bool = False
    mentions: bool = True


@dataclass(frozen=True, slots=True)
class Subscription:
    """A user's interest filter.  Read-only to the engine.

    product_suite / product_concept accept the wildcard ``*``; ``None``
    means the filter is not set and matches only content with no value.
    """

    subscription_id: str
    user_id: str
    product_suite: str | None = None
    product_concept: str | None = None
    tags: tuple[str, ...] = ()
    triggers: SubscriptionTriggers = field(default_factory=SubscriptionTriggers)
    created_at: int | None = None

    @staticmethod
    def new(
        *,
        user_id: str,
        product_suite: str | None = None,
        product_concept: str | None = None,
        tags: tuple[str, ...] = (),
        triggers: SubscriptionTriggers | None = None,
        created_at: int | None = None,
    ) -> Subscription:
        return Subscription(
            subscription_id=f"sub_{uuid4()}",
            user_id=user_id,
            product_suite=product_suite,
            product_concept=product_concept,
            tags=tags,
            triggers=triggers or SubscriptionTriggers(),
            created_at=created_at,
        )


@dataclass(frozen=True, slots=True)
class AccessEvent:
    """A user downloaded (or the assistant cited) an item."""

    item_id: str
    user_id: str
    occurred_at: int
    kind: str = "download"  # download|cited
