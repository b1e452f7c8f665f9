"""Assignment transitions: assigned -> started -> completed, or waived.

completed and waived are terminal.  Like the content lifecycle these are
pure functions returning a new record; callers persist.
"""

from __future__ import annotations

import dataclasses

from progress_engine.core.clock import utc_now
from progress_engine.models.learning import Assignment
from progress_engine.models.learning import AssignmentStatus as A
from progress_engine.services.errors import InvalidTransitionError

TRANSITIONS: dict[str, tuple[frozenset[A], A]] = {
    "start": (frozenset({A.ASSIGNED}), A.STARTED),
    "complete": (frozenset({A.ASSIGNED, A.STARTED}), A.COMPLETED),
    "waive": (frozenset({A.ASSIGNED, A.STARTED}), A.WAIVED),
}


def can_apply(status: A | str, operation: str) -> bool:
    valid_from, _ = TRANSITIONS[operation]
    return A(status) in valid_from


def _check(assignment: Assignment, operation: str) -> A:
    valid_from, target = TRANSITIONS[operation]
    if assignment.status not in valid_from:
        raise InvalidTransitionError(str(assignment.status), operation, target.value)
    return target


def start(assignment: Assignment, *, now: int | None = None) -> Assignment:
    target = _check(assignment, "start")
    ts = now if now is not None else utc_now()
    return dataclasses.replace(assignment, status=target, started_at=ts, updated_at=ts)


def complete(assignment: Assignment, *, now: int | None = None) -> Assignment:
    target = _check(assignment, "complete")
    ts = now if now is not None else utc_now()
    return dataclasses.replace(
        assignment,
        status=target,
        started_at=assignment.started_at or ts,
        completed_at=ts,
        updated_at=ts,
    )


def waive(assignment: Assignment, waived_by: str, *, now: int | None = None) -> Assignment:
    target = _check(assignment, "waive")
    ts = now if now is not None else utc_now()
    return dataclasses.replace(
        assignment, status=target, waived_by=waived_by, waived_at=ts, updated_at=ts
    )
