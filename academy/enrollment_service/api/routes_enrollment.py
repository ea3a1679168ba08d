import logging
from typing import List

from fastapi import APIRouter

from academy.dependencies import EnrollmentAuthorityDep
from academy.enrollment_service import schemas
from academy.http_errors import unwrap
from academy.user_service.guards import AdminSessionDep, SessionDep

router = APIRouter(tags=["Enrollments"])

logger = logging.getLogger("enrollment_service")


@router.get("/me", response_model=List[schemas.EnrollmentOut])
async def my_enrollments(session: SessionDep, authority: EnrollmentAuthorityDep):
    return unwrap(await authority.list_for_user(session.user_id))


@router.get("/stats", response_model=schemas.EnrollmentStats)
async def enrollment_stats(session: AdminSessionDep, authority: EnrollmentAuthorityDep):
    return unwrap(await authority.enrollment_stats())


@router.get("/course/{course_id}", response_model=List[schemas.EnrollmentOut])
async def course_enrollments(course_id: int, session: AdminSessionDep, authority: EnrollmentAuthorityDep):
    return unwrap(await authority.list_for_course(course_id))


@router.get("/{course_id}/status", response_model=schemas.EnrollmentStatusOut)
async def enrollment_status(course_id: int, session: SessionDep, authority: EnrollmentAuthorityDep):
    enrolled = unwrap(await authority.is_enrolled(session.user_id, course_id))
    return {"course_id": course_id, "is_enrolled": enrolled}


@router.post("/{course_id}", response_model=schemas.EnrollmentOut)
async def enroll(course_id: int, session: SessionDep, authority: EnrollmentAuthorityDep):
    return unwrap(await authority.enroll(session.user_id, course_id))
