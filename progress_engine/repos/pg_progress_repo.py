"""PostgreSQL implementations of the progress and learning-path repos."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.db.tables import (
    CourseProgressRow,
    LearningPathRow,
    PathProgressRow,
)
from progress_engine.models.content import LifecycleStatus
from progress_engine.models.learning import LearningPath
from progress_engine.models.progress import (
    CourseProgress,
    PathProgressRollup,
    RollupStatus,
)


class PgCourseProgressRepo:
    """Satisfies the CourseProgressRepo Protocol."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str, course_id: str) -> CourseProgress | None:
        row = await self._session.get(
            CourseProgressRow, (user_id, course_id), populate_existing=True
        )
        if row is None:
            return None
        return CourseProgress(
            user_id=row.user_id,
            course_id=row.course_id,
            completed=row.completed,
            percent_complete=row.percent_complete,
            completed_at=row.completed_at,
            last_activity_at=row.last_activity_at,
        )

    async def put(self, progress: CourseProgress) -> None:
        values = {
            "completed": progress.completed,
            "percent_complete": progress.percent_complete,
            "completed_at": progress.completed_at,
            "last_activity_at": progress.last_activity_at,
        }
        stmt = (
            insert(CourseProgressRow)
            .values(user_id=progress.user_id, course_id=progress.course_id, **values)
            .on_conflict_do_update(
                index_elements=["user_id", "course_id"], set_=values
            )
        )
        await self._session.execute(stmt)


class PgPathProgressRepo:
    """Satisfies the PathProgressRepo Protocol."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str, path_id: str) -> PathProgressRollup | None:
        row = await self._session.get(
            PathProgressRow, (user_id, path_id), populate_existing=True
        )
        if row is None:
            return None
        return PathProgressRollup(
            total_courses=row.total_courses,
            completed_courses=row.completed_courses,
            percent_complete=row.percent_complete,
            status=RollupStatus(row.status),
            started_at=row.started_at,
            completed_at=row.completed_at,
            last_activity_at=row.last_activity_at,
            next_course_id=row.next_course_id,
        )

    async def put(self, user_id: str, path_id: str, rollup: PathProgressRollup) -> None:
        values = {
            "total_courses": rollup.total_courses,
            "completed_courses": rollup.completed_courses,
            "percent_complete": rollup.percent_complete,
            "status": rollup.status.value,
            "started_at": rollup.started_at,
            "completed_at": rollup.completed_at,
            "last_activity_at": rollup.last_activity_at,
            "next_course_id": rollup.next_course_id,
        }
        stmt = (
            insert(PathProgressRow)
            .values(user_id=user_id, path_id=path_id, **values)
            .on_conflict_do_update(index_elements=["user_id", "path_id"], set_=values)
        )
        await self._session.execute(stmt)


class PgPathRepo:
    """Satisfies the PathRepo Protocol."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, path_id: str) -> LearningPath | None:
        row = await self._session.get(LearningPathRow, path_id, populate_existing=True)
        return _row_to_path(row) if row is not None else None

    async def add(self, path: LearningPath) -> None:
        self._session.add(
            LearningPathRow(
                id=path.path_id,
                title=path.title,
                course_ids=list(path.course_ids),
                status=path.status.value,
            )
        )
        await self._session.flush()

    async def list_containing(self, course_id: str) -> list[LearningPath]:
        stmt = (
            select(LearningPathRow)
            .where(LearningPathRow.course_ids.any(course_id))
            .order_by(LearningPathRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_path(r) for r in rows]


def _row_to_path(row: LearningPathRow) -> LearningPath:
    return LearningPath(
        path_id=row.id,
        title=row.title,
        course_ids=tuple(row.course_ids or ()),
        status=LifecycleStatus(row.status),
    )
