from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel

from progress_engine.api.dependencies import StoresDep

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


class NotificationOut(BaseModel):
    notification_id: str
    user_id: str
    type: str
    title: str
    message: str
    item_id: str | None
    read: bool
    created_at: int


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    user_id: Annotated[str, Query(min_length=1)],
    stores: StoresDep,
) -> list[NotificationOut]:
    notifications = await stores.notifications.list_for_user(user_id)
    return [
        NotificationOut(
            notification_id=n.notification_id,
            user_id=n.user_id,
            type=n.type,
            title=n.title,
            message=n.message,
            item_id=n.item_id,
            read=n.read,
            created_at=n.created_at,
        )
        for n in notifications
    ]
