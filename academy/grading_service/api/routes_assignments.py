import logging
from typing import List, Optional

from fastapi import APIRouter, Query, Request

from academy.data.records import SubmissionRecord
from academy.dependencies import DataAccessDep, GradingEngineDep
from academy.grading_service import schemas
from academy.grading_service.service import grade_percentage, letter_grade, read_upload, submission_status
from academy.http_errors import unwrap
from academy.user_service.guards import AdminSessionDep, SessionDep

assignments_router = APIRouter(tags=["Assignments"])
submissions_router = APIRouter(tags=["Grading"])

logger = logging.getLogger("grading_service")


def _out(submission: SubmissionRecord) -> schemas.SubmissionOut:
    return schemas.SubmissionOut(
        **submission.model_dump(exclude={"status"}),
        status=submission_status(submission),
        file_count=len(submission.file_paths),
    )


@assignments_router.post("/{assignment_id}/files", response_model=schemas.UploadedFileOut)
async def upload_file(assignment_id: int, request: Request, session: SessionDep, engine: GradingEngineDep,
                      store: DataAccessDep, filename: str = Query(..., min_length=1)):
    assignment = unwrap(await store.assignments.get(assignment_id))
    content = unwrap(await read_upload(request.stream(), assignment.max_file_size,
                                       request.headers.get("content-length")))
    return unwrap(await engine.upload_file(session.user_id, assignment_id, filename, content))


@assignments_router.post("/{assignment_id}/submit", response_model=schemas.SubmissionOut)
async def submit_assignment(assignment_id: int, data: schemas.SubmitRequest, session: SessionDep,
                            engine: GradingEngineDep):
    logger.info(f"User {session.user_id} submitting assignment {assignment_id}")
    submission = unwrap(await engine.submit(session.user_id, assignment_id, data.file_paths, data.notes))
    return _out(submission)


@assignments_router.get("/{assignment_id}/my-submission", response_model=Optional[schemas.SubmissionOut])
async def my_submission(assignment_id: int, session: SessionDep, engine: GradingEngineDep):
    submission = unwrap(await engine.user_submission(session.user_id, assignment_id))
    return _out(submission) if submission else None


@assignments_router.get("/{assignment_id}/submissions", response_model=List[schemas.SubmissionOut])
async def list_submissions(assignment_id: int, session: AdminSessionDep, engine: GradingEngineDep):
    return [_out(s) for s in unwrap(await engine.list_submissions(assignment_id))]


@assignments_router.get("/{assignment_id}/stats", response_model=schemas.AssignmentStatsOut)
async def assignment_stats(assignment_id: int, session: AdminSessionDep, engine: GradingEngineDep):
    return unwrap(await engine.assignment_stats(assignment_id))


@submissions_router.post("/{submission_id}/grade", response_model=schemas.GradedSubmissionOut)
async def grade_submission(submission_id: int, data: schemas.GradeRequest, session: AdminSessionDep,
                           engine: GradingEngineDep, store: DataAccessDep):
    graded = unwrap(await engine.grade(submission_id, data.score, data.feedback, grader_id=session.user_id))
    assignment = unwrap(await store.assignments.get(graded.assignment_id))
    return schemas.GradedSubmissionOut(
        **_out(graded).model_dump(),
        max_score=assignment.max_score,
        percentage=grade_percentage(graded.score, assignment.max_score),
        letter_grade=letter_grade(graded.score, assignment.max_score),
    )
