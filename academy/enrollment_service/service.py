import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from academy.data import errors
from academy.data.errors import ConflictError, ErrorKind, ValidationError
from academy.data.facade import DataAccess
from academy.data.records import EnrollmentStatus
from academy.data.repository import Result
from academy.data.retry import retry_transient

logger = logging.getLogger("enrollment_service")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnrollmentAuthority:
    """Decides and records a learner's access to a course."""

    def __init__(self, data: DataAccess, retry_attempts: int = 3, retry_delay: float = 0.2,
                 clock: Callable[[], datetime] = _utcnow):
        self.data = data
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.clock = clock

    async def is_enrolled(self, user_id: int, course_id: int) -> Result:
        # zero rows is a plain "no"; a failed query is reported, never read as "no"
        rows, error = await self.data.enrollments.list(user_id=user_id, course_id=course_id)
        if error:
            logger.error(f"Enrollment lookup failed for user {user_id} course {course_id}: {error.message}")
            return Result(False, error)
        return Result(bool(rows))

    async def enroll(self, user_id: int, course_id: int) -> Result:
        logger.info(f"User {user_id} enroll request for course {course_id}")
        return await retry_transient(
            lambda: self._enroll_once(user_id, course_id),
            attempts=self.retry_attempts,
            delay=self.retry_delay,
            label=f"enroll user {user_id} in course {course_id}",
        )

    async def _enroll_once(self, user_id: int, course_id: int) -> Result:
        course, error = await self.data.courses.get(course_id)
        if error:
            if error.kind is ErrorKind.NOT_FOUND:
                logger.warning(f"Course {course_id} not found")
            return Result(None, error)

        if not course.is_active:
            logger.warning(f"Course {course_id} is inactive, refusing enrollment of user {user_id}")
            return Result(None, ValidationError(f"course {course_id} is not open for enrollment",
                                                code=errors.COURSE_INACTIVE))

        enrollment, error = await self.data.enrollments.create({
            "user_id": user_id,
            "course_id": course_id,
            "status": EnrollmentStatus.ACTIVE.value,
            "progress_percentage": 0.0,
            "enrolled_at": self.clock(),
        })
        if isinstance(error, ConflictError) and error.existing is not None:
            logger.info(f"User {user_id} already enrolled in course {course_id}")
            return Result(error.existing)
        if error:
            return Result(None, error)

        logger.info(f"User {user_id} enrolled in course '{course.title}' ({course_id})")
        return Result(enrollment)

    async def list_for_user(self, user_id: int) -> Result:
        return await self.data.enrollments.list(order_by="enrolled_at", descending=True, user_id=user_id)

    async def list_for_course(self, course_id: int) -> Result:
        return await self.data.enrollments.list(order_by="enrolled_at", descending=True, course_id=course_id)

    async def enrollment_stats(self, now: Optional[datetime] = None) -> Result:
        rows, error = await self.data.enrollments.list()
        if error:
            return Result(None, error)

        since = (now or self.clock()) - timedelta(days=30)
        stats = {status.value: 0 for status in EnrollmentStatus}
        for row in rows:
            stats[row.status.value] = stats.get(row.status.value, 0) + 1
        stats["total"] = len(rows)
        stats["recent_enrollments"] = sum(1 for row in rows if row.enrolled_at >= since)
        return Result(stats)
