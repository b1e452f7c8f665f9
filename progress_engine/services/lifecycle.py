"""Lifecycle state machine for versioned content.

    draft ──schedule──▶ scheduled
      │                    │
      └──────publish───────┴──▶ published ──deprecate──▶ deprecated
                                   │                          │
                                 expire                       │
                                   ▼                          │
                                expired ─────archive──────────┴──▶ archived

Every operation is pure: it validates the current status, returns a new
frozen record with the status and side-effect fields set, and leaves
persistence to the caller.  Transitions only ever move forward.
"""

from __future__ import annotations

import dataclasses
from typing import TypeVar

from progress_engine.core.clock import utc_now
from progress_engine.core.metrics import LIFECYCLE_TRANSITIONS
from progress_engine.models.content import Asset, AssetVersion, ContentItem
from progress_engine.models.content import LifecycleStatus as S
from progress_engine.services.errors import InvalidTransitionError

Record = TypeVar("Record", AssetVersion, ContentItem)

TERMINAL: frozenset[S] = frozenset({S.ARCHIVED})

# operation -> (statuses it is valid from, resulting status)
TRANSITIONS: dict[str, tuple[frozenset[S], S]] = {
    "schedule": (frozenset({S.DRAFT}), S.SCHEDULED),
    "publish": (frozenset({S.DRAFT, S.SCHEDULED}), S.PUBLISHED),
    "expire": (frozenset({S.PUBLISHED}), S.EXPIRED),
    "deprecate": (frozenset({S.PUBLISHED}), S.DEPRECATED),
    "archive": (frozenset({S.PUBLISHED, S.DEPRECATED, S.EXPIRED}), S.ARCHIVED),
}


def can_apply(status: S | str, operation: str) -> bool:
    """True when ``operation`` is permitted from ``status``."""
    valid_from, _ = TRANSITIONS[operation]
    return S(status) in valid_from


def _check(record: AssetVersion | ContentItem, operation: str) -> S:
    valid_from, target = TRANSITIONS[operation]
    if record.status not in valid_from:
        LIFECYCLE_TRANSITIONS.labels(operation=operation, result="invalid").inc()
        raise InvalidTransitionError(str(record.status), operation, target.value)
    LIFECYCLE_TRANSITIONS.labels(operation=operation, result="ok").inc()
    return target


def schedule(version: AssetVersion, publish_at: int, *, now: int | None = None) -> AssetVersion:
    target = _check(version, "schedule")
    return dataclasses.replace(
        version,
        status=target,
        publish_at=publish_at,
        updated_at=now if now is not None else utc_now(),
    )


def publish(
    version: AssetVersion,
    published_by: str,
    change_log: str | None = None,
    *,
    now: int | None = None,
) -> AssetVersion:
    target = _check(version, "publish")
    ts = now if now is not None else utc_now()
    return dataclasses.replace(
        version,
        status=target,
        published_by=published_by,
        published_at=ts,
        change_log=change_log,
        publish_at=None,
        updated_at=ts,
    )


def expire(record: Record, *, now: int | None = None) -> Record:
    target = _check(record, "expire")
    return dataclasses.replace(
        record, status=target, updated_at=now if now is not None else utc_now()
    )


def deprecate(record: Record, *, now: int | None = None) -> Record:
    target = _check(record, "deprecate")
    return dataclasses.replace(
        record, status=target, updated_at=now if now is not None else utc_now()
    )


def archive(record: Record, *, now: int | None = None) -> Record:
    target = _check(record, "archive")
    return dataclasses.replace(
        record, status=target, updated_at=now if now is not None else utc_now()
    )


def set_expire_at(
    version: AssetVersion, expire_at: int | None, *, now: int | None = None
) -> AssetVersion:
    """Set (or clear, with None) when a version expires.

    Not a transition: the status is unchanged and the expiry job acts on the
    new timestamp on its next run.  Archived versions are frozen.
    """
    if version.status in TERMINAL:
        LIFECYCLE_TRANSITIONS.labels(operation="set_expire_at", result="invalid").inc()
        raise InvalidTransitionError(str(version.status), "set_expire_at")
    LIFECYCLE_TRANSITIONS.labels(operation="set_expire_at", result="ok").inc()
    return dataclasses.replace(
        version, expire_at=expire_at, updated_at=now if now is not None else utc_now()
    )


def publish_for_asset(
    asset: Asset,
    version: AssetVersion,
    previous: AssetVersion | None,
    *,
    published_by: str,
    change_log: str | None = None,
    now: int | None = None,
) -> tuple[AssetVersion, Asset, AssetVersion | None]:
    """Publish ``version`` and repoint ``asset`` at it.

    ``previous`` is the asset's currently published version, if any; it is
    deprecated in the same step.  Returns (published, asset, deprecated).
    """
    if version.asset_id != asset.asset_id:
        raise ValueError("version does not belong to asset")
    ts = now if now is not None else utc_now()
    published = publish(version, published_by, change_log, now=ts)
    deprecated = None
    if (
        previous is not None
        and previous.version_id != version.version_id
        and previous.status is S.PUBLISHED
    ):
        deprecated = deprecate(previous, now=ts)
    repointed = dataclasses.replace(
        asset, current_published_version_id=published.version_id, updated_at=ts
    )
    return published, repointed, deprecated
