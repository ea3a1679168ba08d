import asyncio
import unittest
from datetime import datetime, timezone

from academy.data import errors
from academy.data.errors import ErrorKind, TransientError
from academy.data.facade import DataAccess
from academy.data.records import EnrollmentStatus
from academy.data.repository import Result
from academy.enrollment_service.service import EnrollmentAuthority

NOW = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)


def _seed():
    return {
        "courses": [
            {"id": 5, "title": "Statistics", "is_active": True},
            {"id": 6, "title": "Retired", "is_active": False},
        ],
        "enrollments": [
            {"id": 1, "user_id": 2, "course_id": 5, "status": "completed", "progress_percentage": 100.0,
             "enrolled_at": datetime(2024, 1, 5, tzinfo=timezone.utc)},
            {"id": 2, "user_id": 3, "course_id": 5, "status": "active",
             "enrolled_at": datetime(2024, 2, 20, tzinfo=timezone.utc)},
        ],
    }


class _Flaky:
    """Wraps a repository method so its first ``failures`` calls report a transient error."""

    def __init__(self, method, failures):
        self.method = method
        self.failures = failures
        self.calls = 0

    async def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            return Result(None, TransientError("backend unavailable"))
        return await self.method(*args, **kwargs)


class EnrollmentAuthorityTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.data = DataAccess.demo(seed=_seed())
        self.authority = EnrollmentAuthority(self.data, retry_delay=0, clock=lambda: NOW)

    async def test_enroll_creates_active_enrollment(self):
        enrollment, error = await self.authority.enroll(1, 5)
        self.assertIsNone(error)
        self.assertEqual((enrollment.user_id, enrollment.course_id), (1, 5))
        self.assertIs(enrollment.status, EnrollmentStatus.ACTIVE)
        self.assertEqual(enrollment.enrolled_at, NOW)
        self.assertEqual(tuple(await self.authority.is_enrolled(1, 5)), (True, None))

    async def test_enroll_twice_returns_same_row(self):
        first, _ = await self.authority.enroll(1, 5)
        second, error = await self.authority.enroll(1, 5)
        self.assertIsNone(error)
        self.assertEqual(first.id, second.id)
        rows, _ = await self.data.enrollments.list(user_id=1, course_id=5)
        self.assertEqual(len(rows), 1)

    async def test_concurrent_enrolls_store_one_row(self):
        results = await asyncio.gather(self.authority.enroll(1, 5), self.authority.enroll(1, 5))
        self.assertTrue(all(error is None for _, error in results))
        self.assertEqual(results[0].value.id, results[1].value.id)
        rows, _ = await self.data.enrollments.list(user_id=1, course_id=5)
        self.assertEqual(len(rows), 1)

    async def test_inactive_course_is_refused(self):
        enrollment, error = await self.authority.enroll(1, 6)
        self.assertIsNone(enrollment)
        self.assertIs(error.kind, ErrorKind.VALIDATION)
        self.assertEqual(error.code, errors.COURSE_INACTIVE)
        self.assertEqual(tuple(await self.authority.is_enrolled(1, 6)), (False, None))

    async def test_unknown_course_is_not_found(self):
        _, error = await self.authority.enroll(1, 404)
        self.assertIs(error.kind, ErrorKind.NOT_FOUND)

    async def test_transient_failure_is_retried(self):
        self.data.courses.get = _Flaky(self.data.courses.get, failures=2)
        enrollment, error = await self.authority.enroll(1, 5)
        self.assertIsNone(error)
        self.assertEqual(enrollment.course_id, 5)
        self.assertEqual(self.data.courses.get.calls, 3)

    async def test_exhausted_retries_report_action_not_confirmed(self):
        self.data.courses.get = _Flaky(self.data.courses.get, failures=10)
        enrollment, error = await self.authority.enroll(1, 5)
        self.assertIsNone(enrollment)
        self.assertIs(error.kind, ErrorKind.TRANSIENT)
        self.assertEqual(error.code, "ActionNotConfirmed")
        self.assertEqual(self.data.courses.get.calls, 3)
        rows, _ = await self.data.enrollments.list(user_id=1, course_id=5)
        self.assertEqual(rows, [])

    async def test_failed_lookup_is_not_read_as_not_enrolled(self):
        async def broken(**filters):
            return Result([], TransientError("backend unavailable"))

        self.data.enrollments.list = broken
        enrolled, error = await self.authority.is_enrolled(2, 5)
        self.assertFalse(enrolled)
        self.assertIsNotNone(error)
        self.assertIs(error.kind, ErrorKind.TRANSIENT)

    async def test_lists_are_newest_first(self):
        rows, _ = await self.authority.list_for_course(5)
        self.assertEqual([row.user_id for row in rows], [3, 2])

    async def test_stats_count_status_and_recent(self):
        await self.authority.enroll(1, 5)
        stats, error = await self.authority.enrollment_stats()
        self.assertIsNone(error)
        self.assertEqual(stats, {"active": 2, "completed": 1, "total": 3, "recent_enrollments": 2})


if __name__ == "__main__":
    unittest.main()
