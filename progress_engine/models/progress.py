from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class RollupStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """One learner's state in one course.

    Created on first activity, mutated on each progress event, never
    deleted.  ``completed`` and ``completed_at`` do not revert once set.
    """

    user_id: str
    course_id: str
    completed: bool = False
    percent_complete: int = 0
    completed_at: int | None = None
    last_activity_at: int | None = None


@dataclass(frozen=True, slots=True)
class PathProgressRollup:
    """Derived summary of a learner's progress across a path's courses.

    Persisted per (user_id, path_id) so the sticky timestamps survive
    recomputation.
    """

    total_courses: int = 0
    completed_courses: int = 0
    percent_complete: int = 0
    status: RollupStatus = RollupStatus.NOT_STARTED
    started_at: int | None = None
    completed_at: int | None = None
    last_activity_at: int | None = None
    next_course_id: str | None = None
