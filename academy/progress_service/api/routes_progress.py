import logging
from typing import List, Optional

from fastapi import APIRouter, Query

from academy.dependencies import ProgressTrackerDep
from academy.http_errors import unwrap
from academy.progress_service import schemas
from academy.user_service.guards import SessionDep

router = APIRouter(tags=["Progress"])

logger = logging.getLogger("progress_service")


@router.post("/complete", response_model=schemas.LessonCompleteOut)
async def complete_lesson(data: schemas.LessonCompleteRequest, session: SessionDep, tracker: ProgressTrackerDep):
    logger.info(f"Received complete_lesson request from user {session.user_id} with data: {data}")
    unwrap(await tracker.mark_complete(session.user_id, data.course_id, data.unit_id))
    pct = unwrap(await tracker.completion_percentage(session.user_id, data.course_id))
    return {"detail": "Lesson marked as completed", "progress_percentage": pct}


@router.put("/units/{unit_id}", response_model=schemas.WatchProgressOut)
async def update_unit_progress(unit_id: int, data: schemas.UnitProgressUpdate, session: SessionDep,
                               tracker: ProgressTrackerDep):
    return unwrap(await tracker.update_unit_progress(
        session.user_id, data.course_id, unit_id, data.position,
        watched_duration=data.watched_duration,
        total_duration=data.total_duration,
        completed=data.is_completed,
    ))


@router.get("/units/{unit_id}", response_model=Optional[schemas.WatchProgressOut])
async def get_unit_progress(unit_id: int, session: SessionDep, tracker: ProgressTrackerDep):
    return unwrap(await tracker.unit_progress(session.user_id, unit_id))


@router.post("/sessions", response_model=schemas.SessionOut)
async def record_session(data: schemas.SessionCreate, session: SessionDep, tracker: ProgressTrackerDep):
    return unwrap(await tracker.record_session(session.user_id, data.course_id, data.duration_minutes,
                                               unit_id=data.unit_id, started_at=data.started_at))


@router.get("/analytics", response_model=schemas.LearningAnalyticsOut)
async def learning_analytics(session: SessionDep, tracker: ProgressTrackerDep,
                             days: int = Query(30, ge=1, le=365)):
    return unwrap(await tracker.learning_analytics(session.user_id, days))


@router.get("/{course_id}/units", response_model=List[schemas.CourseUnitProgressOut])
async def get_course_unit_progress(course_id: int, session: SessionDep, tracker: ProgressTrackerDep):
    return unwrap(await tracker.course_unit_progress(session.user_id, course_id))


@router.get("/{course_id}", response_model=schemas.CourseProgressOut)
async def get_course_progress(course_id: int, session: SessionDep, tracker: ProgressTrackerDep):
    return unwrap(await tracker.course_progress(session.user_id, course_id))
