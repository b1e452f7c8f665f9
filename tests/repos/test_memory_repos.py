from __future__ import annotations

import asyncio

import pytest

from progress_engine.models.learning import Assignment, AssignmentType, LearningPath
from progress_engine.models.notification import Notification
from progress_engine.models.subscription import AccessEvent
from progress_engine.repos.assignment_repo import InMemoryAssignmentRepo
from progress_engine.repos.notification_repo import InMemoryNotificationRepo
from progress_engine.repos.progress_repo import InMemoryPathRepo
from progress_engine.repos.subscription_repo import InMemoryAccessHistory
from tests.conftest import DAY, T0

# ---- paths ----


def test_list_containing() -> None:
    repo = InMemoryPathRepo()

    async def go() -> list[str]:
        await repo.add(LearningPath("p1", "A", ("c1", "c2")))
        await repo.add(LearningPath("p2", "B", ("c2",)))
        await repo.add(LearningPath("p3", "C", ("c3",)))
        return sorted(p.path_id for p in await repo.list_containing("c2"))

    assert asyncio.run(go()) == ["p1", "p2"]


def test_member_course_ids_dedupes_in_order() -> None:
    path = LearningPath("p1", "A", ("c2", "c1", "c2"))
    assert path.member_course_ids() == ["c2", "c1"]


# ---- assignments ----


def test_assignment_repo_filters_by_target() -> None:
    repo = InMemoryAssignmentRepo()
    course = Assignment.new(
        user_id="u1", assignment_type=AssignmentType.COURSE, target_id="x", assigned_at=T0
    )
    path = Assignment.new(
        user_id="u1", assignment_type=AssignmentType.PATH, target_id="x", assigned_at=T0
    )
    asyncio.run(repo.add(course))
    asyncio.run(repo.add(path))

    found = asyncio.run(repo.list_for_target("u1", AssignmentType.PATH, "x"))
    assert found == [path]
    assert asyncio.run(repo.list_for_target("u2", AssignmentType.PATH, "x")) == []


def test_assignment_repo_rejects_duplicates_and_unknown_updates() -> None:
    repo = InMemoryAssignmentRepo()
    a = Assignment.new(
        user_id="u1", assignment_type=AssignmentType.COURSE, target_id="x", assigned_at=T0
    )
    asyncio.run(repo.add(a))
    with pytest.raises(ValueError):
        asyncio.run(repo.add(a))

    other = Assignment.new(
        user_id="u1", assignment_type=AssignmentType.COURSE, target_id="y", assigned_at=T0
    )
    with pytest.raises(KeyError):
        asyncio.run(repo.update(other))


# ---- access history ----


def test_lookback_window_is_inclusive() -> None:
    history = InMemoryAccessHistory()

    async def go() -> set[str]:
        await history.record(AccessEvent("asset-1", "edge", T0 - 30 * DAY))
        await history.record(AccessEvent("asset-1", "stale", T0 - 30 * DAY - 1))
        await history.record(AccessEvent("asset-1", "future", T0 + 1))
        await history.record(AccessEvent("asset-2", "elsewhere", T0))
        return await history.users_who_accessed("asset-1", 30, T0)

    assert asyncio.run(go()) == {"edge"}


# ---- notifications ----


def _note(nid: str, created_at: int, message: str = "m") -> Notification:
    return Notification(nid, "u1", "t", message, created_at)


def test_create_if_absent_keeps_first() -> None:
    repo = InMemoryNotificationRepo()
    first, created = asyncio.run(repo.create_if_absent(_note("n1", T0, "first")))
    again, created_again = asyncio.run(repo.create_if_absent(_note("n1", T0 + 5, "second")))
    assert created is True
    assert created_again is False
    assert again == first


def test_list_for_user_newest_first() -> None:
    repo = InMemoryNotificationRepo()
    for nid, ts in (("a", T0), ("b", T0 + 2), ("c", T0 + 1)):
        asyncio.run(repo.create_if_absent(_note(nid, ts)))
    assert [n.notification_id for n in asyncio.run(repo.list_for_user("u1"))] == ["b", "c", "a"]
