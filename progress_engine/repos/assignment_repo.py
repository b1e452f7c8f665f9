from __future__ import annotations

from typing import Protocol

from progress_engine.models.learning import Assignment, AssignmentType


class AssignmentRepo(Protocol):
    async def get(self, assignment_id: str) -> Assignment | None: ...
    async def add(self, assignment: Assignment) -> None: ...
    async def list_for_target(
        self, user_id: str, assignment_type: AssignmentType, target_id: str
    ) -> list[Assignment]: ...
    async def update(self, assignment: Assignment) -> None: ...


class InMemoryAssignmentRepo:
    def __init__(self) -> None:
        self._store: dict[str, Assignment] = {}

    async def get(self, assignment_id: str) -> Assignment | None:
        return self._store.get(assignment_id)

    async def add(self, assignment: Assignment) -> None:
        if assignment.assignment_id in self._store:
            raise ValueError("assignment already exists")
        self._store[assignment.assignment_id] = assignment

    async def list_for_target(
        self, user_id: str, assignment_type: AssignmentType, target_id: str
    ) -> list[Assignment]:
        return [
            a
            for a in self._store.values()
            if a.user_id == user_id
            and a.assignment_type is assignment_type
            and a.target_id == target_id
        ]

    async def update(self, assignment: Assignment) -> None:
        if assignment.assignment_id not in self._store:
            raise KeyError("assignment not found")
        self._store[assignment.assignment_id] = assignment
