"""Asset version lifecycle endpoints.

GET  /v1/versions/{version_id}
POST /v1/versions/{version_id}/schedule   {publish_at}
POST /v1/versions/{version_id}/publish    {published_by, change_log?}
POST /v1/versions/{version_id}/expire-at  {expire_at | null}
POST /v1/versions/{version_id}/expire
POST /v1/versions/{version_id}/deprecate
POST /v1/versions/{version_id}/archive

An operation the current status does not permit is a 409 carrying the
current status and the operation; so is losing a concurrent write.

A successful publish also notifies ``new_version`` subscribers of the
asset.  That fanout runs after the status write and cannot undo it: when
recipients cannot be resolved the publish still answers 200 and the
failure is logged.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from progress_engine.api.dependencies import StoresDep, get_version_service
from progress_engine.core.config import SETTINGS
from progress_engine.models.content import AssetVersion
from progress_engine.services.errors import (
    InvalidTransitionError,
    LookupFailureError,
    PersistenceConflictError,
    RecordNotFoundError,
)
from progress_engine.services.notifications import NotificationFanout, announce_new_version
from progress_engine.services.versions import VersionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/versions", tags=["versions"])

VersionServiceDep = Annotated[VersionService, Depends(get_version_service)]


class VersionOut(BaseModel):
    version_id: str
    asset_id: str
    version_number: int
    status: str
    publish_at: int | None
    expire_at: int | None
    published_at: int | None
    published_by: str | None
    change_log: str | None
    updated_at: int | None


class ScheduleIn(BaseModel):
    publish_at: int = Field(gt=0)


class PublishIn(BaseModel):
    published_by: str = Field(min_length=1)
    change_log: str | None = None


class ExpireAtIn(BaseModel):
    expire_at: int | None = Field(default=None, gt=0)


def _out(v: AssetVersion) -> VersionOut:
    return VersionOut(
        version_id=v.version_id,
        asset_id=v.asset_id,
        version_number=v.version_number,
        status=v.status.value,
        publish_at=v.publish_at,
        expire_at=v.expire_at,
        published_at=v.published_at,
        published_by=v.published_by,
        change_log=v.change_log,
        updated_at=v.updated_at,
    )


async def _apply(call: Awaitable[AssetVersion]) -> VersionOut:
    return _out(await _run(call))


async def _run(call: Awaitable[AssetVersion]) -> AssetVersion:
    try:
        return await call
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None
    except InvalidTransitionError as e:
        logger.warning("Rejected transition: %s", e)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(e),
                "current_status": e.current,
                "operation": e.operation,
            },
        ) from None
    except PersistenceConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from None


@router.get("/{version_id}", response_model=VersionOut)
async def get_version(version_id: str, service: VersionServiceDep) -> VersionOut:
    return await _apply(service.get(version_id))


@router.post("/{version_id}/schedule", response_model=VersionOut)
async def schedule_version(
    version_id: str, body: ScheduleIn, service: VersionServiceDep
) -> VersionOut:
    return await _apply(service.schedule(version_id, body.publish_at))


@router.post("/{version_id}/publish", response_model=VersionOut)
async def publish_version(
    version_id: str, body: PublishIn, service: VersionServiceDep, stores: StoresDep
) -> VersionOut:
    published = await _run(service.publish(version_id, body.published_by, body.change_log))
    try:
        await announce_new_version(
            published,
            content=stores.content,
            subscriptions=stores.subscriptions,
            fanout=NotificationFanout(stores.notifications),
            concurrency=SETTINGS.expiry.fanout_concurrency,
        )
    except LookupFailureError as e:
        logger.warning("New-version notifications not sent: %s", e,
                       extra={"item_id": published.version_id})
    return _out(published)


@router.post("/{version_id}/expire-at", response_model=VersionOut)
async def set_version_expire_at(
    version_id: str, body: ExpireAtIn, service: VersionServiceDep
) -> VersionOut:
    return await _apply(service.set_expire_at(version_id, body.expire_at))


@router.post("/{version_id}/expire", response_model=VersionOut)
async def expire_version(version_id: str, service: VersionServiceDep) -> VersionOut:
    return await _apply(service.expire(version_id))


@router.post("/{version_id}/deprecate", response_model=VersionOut)
async def deprecate_version(version_id: str, service: VersionServiceDep) -> VersionOut:
    return await _apply(service.deprecate(version_id))


@router.post("/{version_id}/archive", response_model=VersionOut)
async def archive_version(version_id: str, service: VersionServiceDep) -> VersionOut:
    return await _apply(service.archive(version_id))
