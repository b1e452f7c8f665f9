"""PostgreSQL implementation of AssignmentRepo."""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.db.tables import AssignmentRow
from progress_engine.models.learning import (
    Assignment,
    AssignmentStatus,
    AssignmentType,
)


class PgAssignmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, assignment_id: str) -> Assignment | None:
        row = await self._session.get(AssignmentRow, assignment_id, populate_existing=True)
        return _row_to_assignment(row) if row is not None else None

    async def add(self, assignment: Assignment) -> None:
        self._session.add(AssignmentRow(id=assignment.assignment_id, **_values(assignment)))
        await self._session.flush()

    async def list_for_target(
        self, user_id: str, assignment_type: AssignmentType, target_id: str
    ) -> list[Assignment]:
        target_col = (
            AssignmentRow.course_id
            if assignment_type is AssignmentType.COURSE
            else AssignmentRow.path_id
        )
        stmt = select(AssignmentRow).where(
            AssignmentRow.user_id == user_id,
            AssignmentRow.assignment_type == assignment_type.value,
            target_col == target_id,
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_assignment(r) for r in rows]

    async def update(self, assignment: Assignment) -> None:
        stmt = (
            update(AssignmentRow)
            .where(AssignmentRow.id == assignment.assignment_id)
            .values(**_values(assignment))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("assignment not found")


def _values(a: Assignment) -> dict:
    return {
        "user_id": a.user_id,
        "assignment_type": a.assignment_type.value,
        "course_id": a.course_id,
        "path_id": a.path_id,
        "status": a.status.value,
        "assigned_at": a.assigned_at,
        "updated_at": a.updated_at,
        "due_at": a.due_at,
        "assigned_by": a.assigned_by,
        "started_at": a.started_at,
        "completed_at": a.completed_at,
        "waived_by": a.waived_by,
        "waived_at": a.waived_at,
    }


def _row_to_assignment(row: AssignmentRow) -> Assignment:
    return Assignment(
        assignment_id=row.id,
        user_id=row.user_id,
        assignment_type=AssignmentType(row.assignment_type),
        assigned_at=row.assigned_at,
        updated_at=row.updated_at,
        course_id=row.course_id,
        path_id=row.path_id,
        status=AssignmentStatus(row.status),
        due_at=row.due_at,
        assigned_by=row.assigned_by,
        started_at=row.started_at,
        completed_at=row.completed_at,
        waived_by=row.waived_by,
        waived_at=row.waived_at,
    )
