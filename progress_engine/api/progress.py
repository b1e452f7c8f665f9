"""Course progress ingestion and path rollup reads.

POST /v1/progress/courses/{course_id}
  -> upsert the learner's course progress (completion is sticky)
  -> recompute + persist the rollup of every path containing the course
  -> advance matching course/path assignments

GET /v1/progress/paths/{path_id}?user_id=...
  -> persisted rollup, or a fresh computation when none is stored yet
"""

from __future__ import annotations

import dataclasses
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from progress_engine.api.dependencies import get_progress_service
from progress_engine.models.progress import PathProgressRollup
from progress_engine.services.errors import RecordNotFoundError
from progress_engine.services.progress import ProgressService

router = APIRouter(prefix="/v1/progress", tags=["progress"])

ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


class CourseProgressIn(BaseModel):
    user_id: str = Field(min_length=1)
    percent_complete: int = Field(default=0, ge=0, le=100)
    completed: bool = False


class CourseProgressOut(BaseModel):
    user_id: str
    course_id: str
    completed: bool
    percent_complete: int
    completed_at: int | None
    last_activity_at: int | None


class PathRollupOut(BaseModel):
    total_courses: int
    completed_courses: int
    percent_complete: int
    status: str
    started_at: int | None
    completed_at: int | None
    last_activity_at: int | None
    next_course_id: str | None


class ProgressUpdateOut(BaseModel):
    course: CourseProgressOut
    rollups: dict[str, PathRollupOut]


def _rollup_out(rollup: PathProgressRollup) -> PathRollupOut:
    return PathRollupOut(**dataclasses.asdict(rollup))


@router.post("/courses/{course_id}", response_model=ProgressUpdateOut)
async def record_course_progress(
    course_id: str,
    body: CourseProgressIn,
    service: ProgressServiceDep,
) -> ProgressUpdateOut:
    update = await service.record_course_progress(
        body.user_id, course_id, body.percent_complete, body.completed
    )
    return ProgressUpdateOut(
        course=CourseProgressOut(**dataclasses.asdict(update.course)),
        rollups={pid: _rollup_out(r) for pid, r in update.rollups.items()},
    )


@router.get("/paths/{path_id}", response_model=PathRollupOut)
async def get_path_rollup(
    path_id: str,
    user_id: Annotated[str, Query(min_length=1)],
    service: ProgressServiceDep,
) -> PathRollupOut:
    try:
        rollup = await service.get_path_rollup(user_id, path_id)
    except RecordNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Path not found"
        ) from None
    return _rollup_out(rollup)
