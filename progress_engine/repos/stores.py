"""Repository wiring.

``open_stores()`` yields one bundle of repositories per unit of work:
PostgreSQL-backed and sharing a session when DATABASE_URL is configured,
otherwise the process-wide in-memory singletons below.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from progress_engine.db import engine as db
from progress_engine.repos.assignment_repo import AssignmentRepo, InMemoryAssignmentRepo
from progress_engine.repos.content_repo import ContentStore, InMemoryContentStore
from progress_engine.repos.notification_repo import (
    InMemoryNotificationRepo,
    NotificationRepo,
)
from progress_engine.repos.pg_assignment_repo import PgAssignmentRepo
from progress_engine.repos.pg_content_repo import PgContentStore
from progress_engine.repos.pg_notification_repo import PgNotificationRepo
from progress_engine.repos.pg_progress_repo import (
    PgCourseProgressRepo,
    PgPathProgressRepo,
    PgPathRepo,
)
from progress_engine.repos.pg_subscription_repo import (
    PgAccessHistory,
    PgSubscriptionRepo,
)
from progress_engine.repos.progress_repo import (
    CourseProgressRepo,
    InMemoryCourseProgressRepo,
    InMemoryPathProgressRepo,
    InMemoryPathRepo,
    PathProgressRepo,
    PathRepo,
)
from progress_engine.repos.subscription_repo import (
    AccessHistory,
    InMemoryAccessHistory,
    InMemorySubscriptionRepo,
    SubscriptionRepo,
)


@dataclass(frozen=True, slots=True)
class Stores:
    course_progress: CourseProgressRepo
    path_progress: PathProgressRepo
    paths: PathRepo
    assignments: AssignmentRepo
    content: ContentStore
    subscriptions: SubscriptionRepo
    access_history: AccessHistory
    notifications: NotificationRepo


def _in_memory() -> Stores:
    return Stores(
        course_progress=InMemoryCourseProgressRepo(),
        path_progress=InMemoryPathProgressRepo(),
        paths=InMemoryPathRepo(),
        assignments=InMemoryAssignmentRepo(),
        content=InMemoryContentStore(),
        subscriptions=InMemorySubscriptionRepo(),
        access_history=InMemoryAccessHistory(),
        notifications=InMemoryNotificationRepo(),
    )


# Module-level singleton used when no database is configured.
memory_stores = _in_memory()


def reset_memory_stores() -> None:
    """Swap in empty in-memory repositories (tests)."""
    global memory_stores
    memory_stores = _in_memory()


@asynccontextmanager
async def open_stores() -> AsyncGenerator[Stores, None]:
    if db.async_session_factory is None:
        yield memory_stores
        return

    async with db.session_scope() as session:
        yield Stores(
            course_progress=PgCourseProgressRepo(session),
            path_progress=PgPathProgressRepo(session),
            paths=PgPathRepo(session),
            assignments=PgAssignmentRepo(session),
            content=PgContentStore(session),
            subscriptions=PgSubscriptionRepo(session),
            access_history=PgAccessHistory(session),
            notifications=PgNotificationRepo(session),
        )
