"""Assignment submissions, timeliness and the grading workflow."""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, List, Optional, Sequence, Tuple

from academy.data import errors
from academy.data.errors import ConflictError, ValidationError
from academy.data.facade import DataAccess
from academy.data.records import AssignmentRecord, SubmissionRecord, SubmissionStatus
from academy.data.repository import Result
from academy.data.retry import retry_transient
from academy.enrollment_service.service import EnrollmentAuthority

logger = logging.getLogger("grading_service")

SECONDS_PER_DAY = 24 * 60 * 60

SCORE_BUCKETS = (("90-100", 90), ("80-89", 80), ("70-79", 70), ("60-69", 60), ("0-59", 0))
LETTER_GRADES = (("A", 80), ("B", 70), ("C", 60), ("D", 50))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def classify_timeliness(submitted_at: datetime, due_date: Optional[datetime]) -> Tuple[bool, int]:
    """Return ``(is_late, days_late)``.

    Late means strictly after the due timestamp; any partial day counts as a
    whole day, so one second late is one day late.
    """
    if due_date is None or submitted_at <= due_date:
        return False, 0
    delta = (submitted_at - due_date).total_seconds()
    return True, max(1, math.ceil(delta / SECONDS_PER_DAY))


def submission_status(submission: SubmissionRecord) -> SubmissionStatus:
    if submission.score is not None:
        return SubmissionStatus.GRADED
    if submission.is_late:
        return SubmissionStatus.SUBMITTED_LATE
    return SubmissionStatus.SUBMITTED_ON_TIME


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def grade_percentage(score: float, max_score: float) -> int:
    return _round_half_up(score / max_score * 100)


def letter_grade(score: float, max_score: float) -> str:
    pct = score / max_score * 100
    for letter, floor in LETTER_GRADES:
        if pct >= floor:
            return letter
    return "F"


def validate_file(filename: str, size: int, assignment: AssignmentRecord) -> List[ValidationError]:
    problems = []
    if size > assignment.max_file_size:
        limit_mb = assignment.max_file_size / 1024 / 1024
        problems.append(ValidationError(f"{filename} exceeds the {limit_mb:.1f} MB limit",
                                        code=errors.FILE_TOO_LARGE))
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    allowed = [t.lower() for t in assignment.allowed_file_types]
    if ext not in allowed:
        problems.append(ValidationError(f"{filename} is not an allowed type ({', '.join(allowed)})",
                                        code=errors.FILE_TYPE_NOT_ALLOWED))
    return problems


def _too_large(limit: int) -> ValidationError:
    return ValidationError(f"upload exceeds the {limit / 1024 / 1024:.1f} MB limit", code=errors.FILE_TOO_LARGE)


async def read_upload(chunks: AsyncIterator[bytes], limit: int, declared_size: Optional[str] = None) -> Result:
    """Collect an upload body, refusing it as soon as it passes ``limit`` bytes."""
    if declared_size and declared_size.isdigit() and int(declared_size) > limit:
        return Result(None, _too_large(limit))
    content = bytearray()
    async for chunk in chunks:
        content.extend(chunk)
        if len(content) > limit:
            return Result(None, _too_large(limit))
    return Result(bytes(content))


def submission_file_path(assignment_id: int, user_id: int, filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"assignments/{assignment_id}/{user_id}/{uuid.uuid4().hex}.{ext}"


class GradingEngine:

    def __init__(self, data: DataAccess, enrollments: EnrollmentAuthority, retry_attempts: int = 3,
                 retry_delay: float = 0.2, clock: Callable[[], datetime] = _utcnow):
        self.data = data
        self.enrollments = enrollments
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.clock = clock

    async def _open_assignment(self, user_id: int, assignment_id: int) -> Result:
        assignment, error = await self.data.assignments.get(assignment_id)
        if error:
            return Result(None, error)
        if not assignment.is_active:
            return Result(None, ValidationError(f"assignment {assignment_id} is closed",
                                                code=errors.ASSIGNMENT_CLOSED))

        enrolled, error = await self.enrollments.is_enrolled(user_id, assignment.course_id)
        if error:
            return Result(None, error)
        if not enrolled:
            logger.warning(f"User {user_id} is not enrolled in course {assignment.course_id} "
                           f"for assignment {assignment_id}")
            return Result(None, ValidationError(f"user {user_id} is not enrolled in course {assignment.course_id}",
                                                code=errors.NOT_ENROLLED))
        return Result(assignment)

    async def upload_file(self, user_id: int, assignment_id: int, filename: str, content: bytes) -> Result:
        assignment, error = await self._open_assignment(user_id, assignment_id)
        if error:
            return Result(None, error)

        problems = validate_file(filename, len(content), assignment)
        if problems:
            return Result(None, problems[0])

        path = submission_file_path(assignment_id, user_id, filename)
        stored, error = await self.data.storage.upload(path, content)
        if error:
            logger.error(f"Upload of {filename} for assignment {assignment_id} failed: {error.message}")
            return Result(None, error)
        return Result({"path": stored, "original_name": filename, "size": len(content)})

    async def submit(self, user_id: int, assignment_id: int, file_paths: Sequence[str] = (),
                     notes: Optional[str] = None, submitted_at: Optional[datetime] = None) -> Result:
        assignment, error = await self._open_assignment(user_id, assignment_id)
        if error:
            return Result(None, error)

        submitted_at = submitted_at or self.clock()
        is_late, days_late = classify_timeliness(submitted_at, assignment.due_date)
        status = SubmissionStatus.SUBMITTED_LATE if is_late else SubmissionStatus.SUBMITTED_ON_TIME
        content = {
            "submitted_at": submitted_at,
            "file_paths": list(file_paths),
            "notes": notes,
            "status": status.value,
            "is_late": is_late,
            "days_late": days_late,
        }

        created, error = await self.data.submissions.create(
            dict(content, assignment_id=assignment_id, user_id=user_id, attempt_number=1)
        )
        if not isinstance(error, ConflictError):
            if error is None:
                logger.info(f"Created submission for user {user_id} assignment {assignment_id} "
                            f"({status.value}, {days_late} day(s) late)")
            return Result(created, error)

        previous = error.existing
        if previous is None:
            return Result(None, error)
        if previous.is_graded:
            return Result(None, ValidationError(f"submission {previous.id} is already graded",
                                                code=errors.ALREADY_GRADED))

        # latest wins: the ungraded attempt is overwritten in place, unless a
        # grade landed since it was read
        updated, error = await self.data.submissions.update(
            previous.id, dict(content, attempt_number=previous.attempt_number + 1), expect={"score": None}
        )
        if isinstance(error, ConflictError):
            logger.warning(f"Submission {previous.id} was graded before the resubmission was stored")
            return Result(None, ValidationError(f"submission {previous.id} is already graded",
                                                code=errors.ALREADY_GRADED))
        if error is None:
            logger.info(f"Updated submission {previous.id} for user {user_id} assignment {assignment_id} "
                        f"(attempt {updated.attempt_number})")
        return Result(updated, error)

    async def grade(self, submission_id: int, score: int, feedback: Optional[str] = None,
                    grader_id: Optional[int] = None) -> Result:
        return await retry_transient(
            lambda: self._grade_once(submission_id, score, feedback, grader_id),
            attempts=self.retry_attempts,
            delay=self.retry_delay,
            label=f"grade submission {submission_id}",
        )

    async def _grade_once(self, submission_id: int, score: int, feedback: Optional[str],
                          grader_id: Optional[int]) -> Result:
        submission, error = await self.data.submissions.get(submission_id)
        if error:
            return Result(None, error)
        assignment, error = await self.data.assignments.get(submission.assignment_id)
        if error:
            return Result(None, error)

        if score < 0 or score > assignment.max_score:
            logger.warning(f"Score {score} out of range 0-{assignment.max_score} for submission {submission_id}")
            return Result(None, ValidationError(f"score must be between 0 and {assignment.max_score}",
                                                code=errors.SCORE_OUT_OF_RANGE))

        graded, error = await self.data.submissions.update(submission_id, {
            "score": score,
            "feedback": feedback,
            "status": SubmissionStatus.GRADED.value,
            "graded_at": self.clock(),
            "graded_by": grader_id,
        })
        if error is None:
            logger.info(f"Submission {submission_id} graded {score}/{assignment.max_score} "
                        f"({grade_percentage(score, assignment.max_score)}%)")
        return Result(graded, error)

    async def list_submissions(self, assignment_id: int) -> Result:
        return await self.data.submissions.list(order_by="submitted_at", descending=True,
                                                assignment_id=assignment_id)

    async def user_submission(self, user_id: int, assignment_id: int) -> Result:
        return await self.data.submissions.find_one(user_id=user_id, assignment_id=assignment_id)

    async def assignment_stats(self, assignment_id: int) -> Result:
        assignment, error = await self.data.assignments.get(assignment_id)
        if error:
            return Result(None, error)
        submissions, error = await self.data.submissions.list(assignment_id=assignment_id)
        if error:
            return Result(None, error)

        graded = [s for s in submissions if s.score is not None]
        distribution = {label: 0 for label, _ in SCORE_BUCKETS}
        for s in graded:
            pct = grade_percentage(s.score, assignment.max_score)
            for label, floor in SCORE_BUCKETS:
                if pct >= floor:
                    distribution[label] += 1
                    break

        return Result({
            "total_submissions": len(submissions),
            "graded_submissions": len(graded),
            "average_score": _round_half_up(sum(s.score for s in graded) / len(graded)) if graded else 0,
            "late_submissions": sum(1 for s in submissions if s.is_late),
            "on_time_submissions": sum(1 for s in submissions if not s.is_late),
            "score_distribution": distribution,
        })
