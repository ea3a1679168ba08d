import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from academy.data import errors
from academy.data.errors import ConflictError, ValidationError
from academy.data.facade import DataAccess
from academy.data.records import EnrollmentStatus
from academy.data.repository import Result
from academy.enrollment_service.service import EnrollmentAuthority

logger = logging.getLogger("progress_service")

WATCH_COMPLETE_RATIO = 0.9


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def percentage(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(completed / total * 100, 2)


class ProgressTracker:
    """Per-unit completion and the completion percentage derived from it.

    Nothing here is cached: the percentage is recomputed from the progress
    rows on every call, since it is read right after writes.
    """

    def __init__(self, data: DataAccess, enrollments: EnrollmentAuthority,
                 clock: Callable[[], datetime] = _utcnow):
        self.data = data
        self.enrollments = enrollments
        self.clock = clock

    async def _enrolled_unit(self, user_id: int, course_id: int, unit_id: int) -> Result:
        """The unit, once it is known to belong to the course and the learner is enrolled."""
        unit, error = await self.data.units.get(unit_id)
        if error:
            return Result(None, error)
        if unit.course_id != course_id:
            logger.warning(f"Unit {unit_id} does not belong to course {course_id}")
            return Result(None, ValidationError(f"unit {unit_id} is not part of course {course_id}",
                                                code=errors.UNIT_NOT_IN_COURSE))

        enrolled, error = await self.enrollments.is_enrolled(user_id, course_id)
        if error:
            return Result(None, error)
        if not enrolled:
            logger.warning(f"User {user_id} is not enrolled in course {course_id}")
            return Result(None, ValidationError(f"user {user_id} is not enrolled in course {course_id}",
                                                code=errors.NOT_ENROLLED))
        return Result(unit)

    async def mark_complete(self, user_id: int, course_id: int, unit_id: int) -> Result:
        _, error = await self._enrolled_unit(user_id, course_id, unit_id)
        if error:
            return Result(None, error)

        key = {"user_id": user_id, "course_id": course_id, "unit_id": unit_id}
        existing, error = await self.data.progress.find_one(**key)
        if error:
            return Result(None, error)

        if existing is None:
            _, error = await self.data.progress.create(dict(key, is_completed=True, completed_at=self.clock()))
            if isinstance(error, ConflictError) and error.existing is not None:
                # a concurrent call inserted the row first
                existing, error = error.existing, None
            if error:
                return Result(None, error)

        if existing is not None and not existing.is_completed:
            _, error = await self.data.progress.update(existing.id, {"is_completed": True,
                                                                     "completed_at": self.clock()})
            if error:
                return Result(None, error)

        logger.info(f"User {user_id} completed unit {unit_id} in course {course_id}")
        _, error = await self.sync_enrollment(user_id, course_id)
        return Result(None, error)

    async def completion_percentage(self, user_id: int, course_id: int) -> Result:
        counts, error = await self._counts(user_id, course_id)
        if error:
            return Result(0.0, error)
        completed, total = counts
        return Result(percentage(completed, total))

    async def _counts(self, user_id: int, course_id: int) -> Result:
        units, error = await self.data.units.list(course_id=course_id)
        if error:
            return Result(None, error)
        done, error = await self.data.progress.list(user_id=user_id, course_id=course_id, is_completed=True)
        if error:
            return Result(None, error)
        unit_ids = {unit.id for unit in units}
        completed = len({row.unit_id for row in done} & unit_ids)
        return Result((completed, len(unit_ids)))

    async def course_progress(self, user_id: int, course_id: int) -> Result:
        enrolled, error = await self.enrollments.is_enrolled(user_id, course_id)
        if error:
            return Result(None, error)
        if not enrolled:
            return Result({"enrolled": False})

        units, error = await self.data.units.list(order_by="order_index", course_id=course_id)
        if error:
            return Result(None, error)
        done, error = await self.data.progress.list(user_id=user_id, course_id=course_id, is_completed=True)
        if error:
            return Result(None, error)

        completed_at = {row.unit_id: row.completed_at for row in done}
        content = [
            {
                "unit_id": unit.id,
                "title": unit.title,
                "content_type": unit.content_type,
                "order_index": unit.order_index,
                "is_completed": unit.id in completed_at,
                "completed_at": completed_at.get(unit.id),
            }
            for unit in units
        ]
        completed = sum(1 for item in content if item["is_completed"])
        return Result({
            "enrolled": True,
            "content_progress": content,
            "completed_count": completed,
            "total_count": len(content),
            "progress_percentage": percentage(completed, len(content)),
        })

    async def sync_enrollment(self, user_id: int, course_id: int) -> Result:
        """Store the fresh percentage on the enrollment row, completing it at 100%."""
        enrollment, error = await self.data.enrollments.find_one(user_id=user_id, course_id=course_id)
        if error or enrollment is None:
            return Result(None, error)

        value, error = await self.completion_percentage(user_id, course_id)
        if error:
            return Result(None, error)

        changes = {"progress_percentage": value}
        if value >= 100 and enrollment.status is not EnrollmentStatus.COMPLETED:
            changes["status"] = EnrollmentStatus.COMPLETED.value
            changes["completed_at"] = self.clock()
        return await self.data.enrollments.update(enrollment.id, changes)

    async def update_unit_progress(self, user_id: int, course_id: int, unit_id: int, position: float,
                                   watched_duration: float = 0.0, total_duration: float = 0.0,
                                   completed: bool = False) -> Result:
        """Record where a learner is in a unit's media.

        ``watched_duration`` never goes down. Reaching 90% of the total, or an
        explicit ``completed``, marks the unit complete.
        """
        if min(position, watched_duration, total_duration) < 0:
            return Result(None, ValidationError("positions and durations must not be negative",
                                                code=errors.INVALID_PROGRESS))
        _, error = await self._enrolled_unit(user_id, course_id, unit_id)
        if error:
            return Result(None, error)

        existing, error = await self.data.watch_progress.find_one(user_id=user_id, unit_id=unit_id)
        if error:
            return Result(None, error)

        row = None
        if existing is None:
            values = self._watch_values(None, position, watched_duration, total_duration, completed)
            row, error = await self.data.watch_progress.create(dict(values, user_id=user_id, course_id=course_id,
                                                                    unit_id=unit_id))
            if isinstance(error, ConflictError) and error.existing is not None:
                existing, error = error.existing, None
            if error:
                return Result(None, error)

        if existing is not None:
            values = self._watch_values(existing, position, watched_duration, total_duration, completed)
            row, error = await self.data.watch_progress.update(existing.id, values)
            if error:
                return Result(None, error)

        if row.completed_at is not None:
            _, error = await self.mark_complete(user_id, course_id, unit_id)
            if error:
                return Result(None, error)
        return Result(row)

    def _watch_values(self, existing, position: float, watched: float, total: float, completed: bool) -> dict:
        if existing is not None:
            watched = max(existing.watched_duration, watched)
            total = total or existing.total_duration
        reached = completed or (total > 0 and position / total >= WATCH_COMPLETE_RATIO)
        completed_at = existing.completed_at if existing is not None else None
        if reached and completed_at is None:
            completed_at = self.clock()
        return {
            "last_position": position,
            "watched_duration": watched,
            "total_duration": total,
            "completed_at": completed_at,
            "updated_at": self.clock(),
        }

    async def unit_progress(self, user_id: int, unit_id: int) -> Result:
        return await self.data.watch_progress.find_one(user_id=user_id, unit_id=unit_id)

    async def course_unit_progress(self, user_id: int, course_id: int, content_type: Optional[str] = "video") -> Result:
        """Units of a course (by default only videos) paired with the learner's watch state."""
        filters = {"course_id": course_id}
        if content_type:
            filters["content_type"] = content_type
        units, error = await self.data.units.list(order_by="order_index", **filters)
        if error:
            return Result([], error)
        rows, error = await self.data.watch_progress.list(user_id=user_id, course_id=course_id)
        if error:
            return Result([], error)

        by_unit = {row.unit_id: row for row in rows}
        return Result([
            {
                "unit_id": unit.id,
                "title": unit.title,
                "content_type": unit.content_type,
                "duration_minutes": unit.duration_minutes,
                "progress": by_unit.get(unit.id),
                "completion_percentage": by_unit[unit.id].position_percentage if unit.id in by_unit else 0,
                "is_completed": unit.id in by_unit and by_unit[unit.id].completed_at is not None,
            }
            for unit in units
        ])

    async def record_session(self, user_id: int, course_id: int, duration_minutes: float,
                             unit_id: Optional[int] = None, started_at: Optional[datetime] = None) -> Result:
        if duration_minutes < 0:
            return Result(None, ValidationError("session duration must not be negative",
                                                code=errors.INVALID_PROGRESS))
        return await self.data.sessions.create({
            "user_id": user_id,
            "course_id": course_id,
            "unit_id": unit_id,
            "started_at": started_at or self.clock(),
            "duration_minutes": duration_minutes,
        })

    async def learning_analytics(self, user_id: int, days: int = 30, now: Optional[datetime] = None) -> Result:
        """Sessions of the last ``days`` days grouped by content type and by day."""
        since = (now or self.clock()) - timedelta(days=days)
        sessions, error = await self.data.sessions.list(order_by="started_at", descending=True, user_id=user_id)
        if error:
            return Result(None, error)
        units, error = await self.data.units.list()
        if error:
            return Result(None, error)

        content_types = {unit.id: unit.content_type for unit in units}
        recent = [s for s in sessions if s.started_at >= since]
        by_type, by_day = {}, {}
        for s in recent:
            for groups, key in ((by_type, content_types.get(s.unit_id) or "unknown"),
                                (by_day, s.started_at.date().isoformat())):
                group = groups.setdefault(key, {"count": 0, "duration": 0.0})
                group["count"] += 1
                group["duration"] += s.duration_minutes

        total = sum(s.duration_minutes for s in recent)
        most_active = None
        for day, group in by_day.items():
            if group["duration"] > 0 and (most_active is None or group["duration"] > by_day[most_active]["duration"]):
                most_active = day
        return Result({
            "total_sessions": len(recent),
            "total_time_minutes": total,
            "by_content_type": by_type,
            "by_day": by_day,
            "most_active_day": most_active,
            "average_session_length": int(math.floor(total / len(recent) + 0.5)) if recent else 0,
        })
