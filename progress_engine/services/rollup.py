"""Path progress rollup.

Derives a learner's aggregate state across a learning path from the
per-course progress records.  The computation is deterministic for a given
set of course records; only ``last_activity_at`` moves on every call, while
``started_at`` and ``completed_at`` are carried over from the previously
persisted rollup once set.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence

from progress_engine.core.clock import utc_now
from progress_engine.core.metrics import ROLLUP_COMPUTATIONS, ROLLUP_LOOKUP_FAILURES
from progress_engine.models.learning import LearningPath
from progress_engine.models.progress import (
    CourseProgress,
    PathProgressRollup,
    RollupStatus,
)

logger = logging.getLogger(__name__)

ProgressLookup = Callable[[str, str], Awaitable[CourseProgress | None]]


def percent(completed: int, total: int) -> int:
    """Whole percentage, nearest with halves rounded up; 0 for an empty path."""
    if total <= 0:
        return 0
    return (completed * 200 + total) // (2 * total)


def summarize(
    course_ids: Sequence[str],
    progress_by_course: Mapping[str, CourseProgress | None],
    existing: PathProgressRollup | None,
    now: int,
) -> PathProgressRollup:
    """Pure rollup over already-fetched course records."""
    total = len(course_ids)
    completed = 0
    any_record = False
    next_course_id = None
    for course_id in course_ids:
        progress = progress_by_course.get(course_id)
        if progress is not None:
            any_record = True
        if progress is not None and progress.completed:
            completed += 1
        elif next_course_id is None:
            next_course_id = course_id

    if total > 0 and completed == total:
        status = RollupStatus.COMPLETED
        next_course_id = None
    elif completed > 0 or any_record:
        status = RollupStatus.IN_PROGRESS
    else:
        status = RollupStatus.NOT_STARTED

    started_at = existing.started_at if existing else None
    if started_at is None and status is not RollupStatus.NOT_STARTED:
        started_at = now

    completed_at = existing.completed_at if existing else None
    if completed_at is None and status is RollupStatus.COMPLETED:
        completed_at = now

    return PathProgressRollup(
        total_courses=total,
        completed_courses=completed,
        percent_complete=percent(completed, total),
        status=status,
        started_at=started_at,
        completed_at=completed_at,
        last_activity_at=now,
        next_course_id=next_course_id,
    )


async def compute_rollup(
    user_id: str,
    path: LearningPath,
    existing: PathProgressRollup | None,
    lookup: ProgressLookup,
    now: int | None = None,
) -> PathProgressRollup:
    """Fetch each member course's progress in path order and summarize.

    A lookup that raises for one course counts as "no progress" for that
    course; the rest of the path is still rolled up.
    """
    ts = now if now is not None else utc_now()
    course_ids = path.member_course_ids()

    progress_by_course: dict[str, CourseProgress | None] = {}
    for course_id in course_ids:
        try:
            progress_by_course[course_id] = await lookup(user_id, course_id)
        except Exception:
            ROLLUP_LOOKUP_FAILURES.inc()
            logger.warning(
                "Course progress lookup failed; treating as not started",
                exc_info=True,
                extra={"user_id": user_id, "path_id": path.path_id, "item_id": course_id},
            )
            progress_by_course[course_id] = None

    rollup = summarize(course_ids, progress_by_course, existing, ts)
    ROLLUP_COMPUTATIONS.labels(status=rollup.status.value).inc()
    return rollup
