from __future__ import annotations

from typing import Protocol

from progress_engine.models.learning import LearningPath
from progress_engine.models.progress import CourseProgress, PathProgressRollup


class CourseProgressRepo(Protocol):
    async def get(self, user_id: str, course_id: str) -> CourseProgress | None: ...
    async def put(self, progress: CourseProgress) -> None: ...


class PathProgressRepo(Protocol):
    async def get(self, user_id: str, path_id: str) -> PathProgressRollup | None: ...
    async def put(
        self, user_id: str, path_id: str, rollup: PathProgressRollup
    ) -> None: ...


class PathRepo(Protocol):
    async def get(self, path_id: str) -> LearningPath | None: ...
    async def add(self, path: LearningPath) -> None: ...
    async def list_containing(self, course_id: str) -> list[LearningPath]: ...


class InMemoryCourseProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[str, str], CourseProgress] = {}

    async def get(self, user_id: str, course_id: str) -> CourseProgress | None:
        return self._store.get((user_id, course_id))

    async def put(self, progress: CourseProgress) -> None:
        self._store[(progress.user_id, progress.course_id)] = progress


class InMemoryPathProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[str, str], PathProgressRollup] = {}

    async def get(self, user_id: str, path_id: str) -> PathProgressRollup | None:
        return self._store.get((user_id, path_id))

    async def put(self, user_id: str, path_id: str, rollup: PathProgressRollup) -> None:
        self._store[(user_id, path_id)] = rollup


class InMemoryPathRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, LearningPath] = {}

    async def get(self, path_id: str) -> LearningPath | None:
        return self._by_id.get(path_id)

    async def add(self, path: LearningPath) -> None:
        self._by_id[path.path_id] = path

    async def list_containing(self, course_id: str) -> list[LearningPath]:
        return [p for p in self._by_id.values() if course_id in p.course_ids]
