from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class NotificationKind(StrEnum):
    """Event kinds; the kind is the first segment of a notification id."""

    EXPIRED = "expired"
    NEW_VERSION = "new_version"


@dataclass(frozen=True, slots=True)
class Notification:
    notification_id: str
    user_id: str
    title: str
    message: str
    created_at: int
    item_id: str | None = None
    type: str = "info"  # info|warning
    read: bool = False
