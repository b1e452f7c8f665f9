from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import uuid4

from progress_engine.models.content import LifecycleStatus


@dataclass(frozen=True, slots=True)
class LearningPath:
    path_id: str
    title: str
    course_ids: tuple[str, ...] = ()
    status: LifecycleStatus = LifecycleStatus.DRAFT

    def member_course_ids(self) -> list[str]:
        """Ordered member courses with duplicates removed (first one wins)."""
        return list(dict.fromkeys(self.course_ids))


class AssignmentStatus(StrEnum):
    ASSIGNED = "assigned"
    STARTED = "started"
    COMPLETED = "completed"
    WAIVED = "waived"


class AssignmentType(StrEnum):
    COURSE = "course"
    PATH = "path"


@dataclass(frozen=True, slots=True)
class Assignment:
    assignment_id: str
    user_id: str
    assignment_type: AssignmentType
    assigned_at: int
    updated_at: int
    course_id: str | None = None
    path_id: str | None = None
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    due_at: int | None = None
    assigned_by: str | None = None
    started_at: int | None = None
    completed_at: int | None = None
    waived_by: str | None = None
    waived_at: int | None = None

    @property
    def target_id(self) -> str | None:
        if self.assignment_type is AssignmentType.COURSE:
            return self.course_id
        return self.path_id

    @staticmethod
    def new(
        *,
        user_id: str,
        assignment_type: AssignmentType,
        target_id: str,
        assigned_at: int,
        due_at: int | None = None,
        assigned_by: str | None = None,
    ) -> Assignment:
        is_course = assignment_type is AssignmentType.COURSE
        return Assignment(
            assignment_id=f"assignment_{uuid4()}",
            user_id=user_id,
            assignment_type=assignment_type,
            assigned_at=assigned_at,
            updated_at=assigned_at,
            course_id=target_id if is_course else None,
            path_id=None if is_course else target_id,
            due_at=due_at,
            assigned_by=assigned_by,
        )
