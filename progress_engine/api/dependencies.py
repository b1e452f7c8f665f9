from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from progress_engine.repos.stores import Stores, open_stores
from progress_engine.services.progress import ProgressService
from progress_engine.services.versions import VersionService


async def get_stores() -> AsyncGenerator[Stores, None]:
    """Request-scoped repositories; one DB transaction per request."""
    async with open_stores() as stores:
        yield stores


StoresDep = Annotated[Stores, Depends(get_stores)]


def get_progress_service(stores: StoresDep) -> ProgressService:
    return ProgressService(
        stores.course_progress,
        stores.path_progress,
        stores.paths,
        stores.assignments,
    )


def get_version_service(stores: StoresDep) -> VersionService:
    return VersionService(stores.content)
