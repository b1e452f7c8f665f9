"""Course progress ingestion.

Recording a course progress event recomputes the rollup of every learning
path that contains the course and moves the learner's assignments along.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from progress_engine.core.clock import Clock, utc_now
from progress_engine.models.learning import Assignment, AssignmentType
from progress_engine.models.progress import (
    CourseProgress,
    PathProgressRollup,
    RollupStatus,
)
from progress_engine.repos.assignment_repo import AssignmentRepo
from progress_engine.repos.progress_repo import (
    CourseProgressRepo,
    PathProgressRepo,
    PathRepo,
)
from progress_engine.services import assignments
from progress_engine.services.errors import RecordNotFoundError
from progress_engine.services.rollup import compute_rollup

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    course: CourseProgress
    rollups: dict[str, PathProgressRollup] = field(default_factory=dict)


class ProgressService:
    def __init__(
        self,
        course_progress: CourseProgressRepo,
        path_progress: PathProgressRepo,
        paths: PathRepo,
        assignment_repo: AssignmentRepo,
        clock: Clock = utc_now,
    ) -> None:
        self._course_progress = course_progress
        self._path_progress = path_progress
        self._paths = paths
        self._assignments = assignment_repo
        self._clock = clock

    async def record_course_progress(
        self,
        user_id: str,
        course_id: str,
        percent_complete: int,
        completed: bool,
        *,
        now: int | None = None,
    ) -> ProgressUpdate:
        if not 0 <= percent_complete <= 100:
            raise ValueError("percent_complete must be between 0 and 100")
        ts = now if now is not None else self._clock()

        existing = await self._course_progress.get(user_id, course_id)
        # Completion never reverts.
        done = completed or (existing is not None and existing.completed)
        course = CourseProgress(
            user_id=user_id,
            course_id=course_id,
            completed=done,
            percent_complete=100 if done else percent_complete,
            completed_at=(existing.completed_at if existing else None)
            or (ts if done else None),
            last_activity_at=ts,
        )
        await self._course_progress.put(course)
        await self._sync(user_id, AssignmentType.COURSE, course_id, started=True,
                         finished=done, now=ts)

        rollups: dict[str, PathProgressRollup] = {}
        for path in await self._paths.list_containing(course_id):
            previous = await self._path_progress.get(user_id, path.path_id)
            rollup = await compute_rollup(
                user_id, path, previous, self._course_progress.get, now=ts
            )
            await self._path_progress.put(user_id, path.path_id, rollup)
            rollups[path.path_id] = rollup
            await self._sync(
                user_id,
                AssignmentType.PATH,
                path.path_id,
                started=rollup.status is not RollupStatus.NOT_STARTED,
                finished=rollup.status is RollupStatus.COMPLETED,
                now=ts,
            )

        logger.info(
            "Recorded progress for course %s; %d path rollup(s) updated",
            course_id,
            len(rollups),
            extra={"user_id": user_id},
        )
        return ProgressUpdate(course=course, rollups=rollups)

    async def get_path_rollup(self, user_id: str, path_id: str) -> PathProgressRollup:
        """The persisted rollup, or a fresh computation when none is stored."""
        path = await self._paths.get(path_id)
        if path is None:
            raise RecordNotFoundError("path", path_id)
        stored = await self._path_progress.get(user_id, path_id)
        if stored is not None:
            return stored
        return await compute_rollup(
            user_id, path, None, self._course_progress.get, now=self._clock()
        )

    async def waive_assignment(
        self, assignment_id: str, waived_by: str, *, now: int | None = None
    ) -> Assignment:
        assignment = await self._assignments.get(assignment_id)
        if assignment is None:
            raise RecordNotFoundError("assignment", assignment_id)
        waived = assignments.waive(
            assignment, waived_by, now=now if now is not None else self._clock()
        )
        await self._assignments.update(waived)
        return waived

    async def _sync(
        self,
        user_id: str,
        assignment_type: AssignmentType,
        target_id: str,
        *,
        started: bool,
        finished: bool,
        now: int,
    ) -> None:
        for assignment in await self._assignments.list_for_target(
            user_id, assignment_type, target_id
        ):
            if finished and assignments.can_apply(assignment.status, "complete"):
                updated = assignments.complete(assignment, now=now)
            elif started and assignments.can_apply(assignment.status, "start"):
                updated = assignments.start(assignment, now=now)
            else:
                continue
            await self._assignments.update(updated)
            logger.info(
                "Assignment %s -> %s",
                assignment.assignment_id,
                updated.status,
                extra={"user_id": user_id},
            )
