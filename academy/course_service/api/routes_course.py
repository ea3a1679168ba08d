from typing import List

from fastapi import APIRouter

from academy.course_service import schemas
from academy.dependencies import DataAccessDep, ProgressTrackerDep
from academy.http_errors import unwrap
from academy.user_service.guards import EnrolledSessionDep

course_router = APIRouter(tags=["Courses"])


@course_router.get("/", response_model=List[schemas.CourseOut])
async def list_courses(data: DataAccessDep):
    return unwrap(await data.courses.list(order_by="id", is_active=True))


@course_router.get("/{course_id}", response_model=schemas.CourseDetailOut)
async def get_course_detail(course_id: int, data: DataAccessDep):
    course = unwrap(await data.courses.get(course_id))
    units = unwrap(await data.units.list(order_by="order_index", course_id=course_id))
    return schemas.CourseDetailOut(**course.model_dump(), units=[u.model_dump() for u in units])


@course_router.get("/{course_id}/learn", response_model=schemas.CourseLearningOut)
async def course_learning(course_id: int, session: EnrolledSessionDep, data: DataAccessDep,
                          tracker: ProgressTrackerDep):
    course = unwrap(await data.courses.get(course_id))
    units = unwrap(await data.units.list(order_by="order_index", course_id=course_id))
    assignments = unwrap(await data.assignments.list(order_by="id", course_id=course_id, is_active=True))
    pct = unwrap(await tracker.completion_percentage(session.user_id, course_id))
    return schemas.CourseLearningOut(
        **course.model_dump(),
        units=[u.model_dump() for u in units],
        assignments=[a.model_dump() for a in assignments],
        progress_percentage=pct,
    )
