"""Repository contract against the in-memory demo dataset."""

import unittest
from datetime import datetime, timezone

from academy.backend.mode import Mode
from academy.data import errors
from academy.data.errors import ConflictError, ErrorKind, FatalError, NotFoundError
from academy.data.facade import DataAccess
from academy.data.records import CourseRecord, EnrollmentRecord, SubmissionRecord

NOW = datetime(2024, 2, 1, tzinfo=timezone.utc)


class DemoRepositoryTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.data = DataAccess.demo()

    async def test_demo_facade_reports_demo_mode(self):
        self.assertIs(self.data.mode, Mode.DEMO)

    async def test_get_returns_record(self):
        course, error = await self.data.courses.get(1)
        self.assertIsNone(error)
        self.assertIsInstance(course, CourseRecord)
        self.assertEqual(course.title, "Python Programming Fundamentals")

    async def test_get_missing_is_not_found_value(self):
        course, error = await self.data.courses.get(999)
        self.assertIsNone(course)
        self.assertIsInstance(error, NotFoundError)
        self.assertIs(error.kind, ErrorKind.NOT_FOUND)

    async def test_list_with_no_match_is_empty_not_error(self):
        rows, error = await self.data.enrollments.list(user_id=1, course_id=2)
        self.assertEqual(rows, [])
        self.assertIsNone(error)

    async def test_list_orders_rows(self):
        units, _ = await self.data.units.list(order_by="order_index", descending=True, course_id=1)
        self.assertEqual([u.order_index for u in units], [4, 3, 2, 1])

    async def test_create_assigns_id_and_returns_record(self):
        row, error = await self.data.enrollments.create(
            {"user_id": 1, "course_id": 2, "status": "active", "enrolled_at": NOW}
        )
        self.assertIsNone(error)
        self.assertIsInstance(row, EnrollmentRecord)
        self.assertEqual(row.id, 2)

    async def test_create_on_existing_natural_key_conflicts_with_existing_row(self):
        row, error = await self.data.enrollments.create(
            {"user_id": 1, "course_id": 1, "status": "active", "enrolled_at": NOW}
        )
        self.assertIsNone(row)
        self.assertIsInstance(error, ConflictError)
        self.assertEqual(error.existing.id, 1)
        rows, _ = await self.data.enrollments.list(user_id=1, course_id=1)
        self.assertEqual(len(rows), 1)

    async def test_create_rejects_malformed_row_without_storing_it(self):
        row, error = await self.data.submissions.create({"assignment_id": 1, "user_id": 1})
        self.assertIsNone(row)
        self.assertIsInstance(error, FatalError)
        rows, _ = await self.data.submissions.list()
        self.assertEqual(rows, [])

    async def test_update_changes_row_in_place(self):
        row, error = await self.data.enrollments.update(1, {"progress_percentage": 50.0})
        self.assertIsNone(error)
        self.assertEqual(row.progress_percentage, 50.0)
        again, _ = await self.data.enrollments.get(1)
        self.assertEqual(again.progress_percentage, 50.0)

    async def test_update_missing_row_is_not_found(self):
        row, error = await self.data.enrollments.update(42, {"status": "completed"})
        self.assertIsNone(row)
        self.assertIsInstance(error, NotFoundError)

    async def test_guarded_update_applies_while_row_matches(self):
        row, error = await self.data.enrollments.update(1, {"progress_percentage": 50.0},
                                                        expect={"status": "active"})
        self.assertIsNone(error)
        self.assertEqual(row.progress_percentage, 50.0)

    async def test_guarded_update_leaves_changed_row_alone(self):
        await self.data.enrollments.update(1, {"status": "completed"})
        row, error = await self.data.enrollments.update(1, {"progress_percentage": 50.0},
                                                        expect={"status": "active"})
        self.assertIsNone(row)
        self.assertIsInstance(error, ConflictError)
        self.assertEqual(error.code, errors.STALE_ROW)
        self.assertEqual(error.existing.progress_percentage, 25.0)
        stored, _ = await self.data.enrollments.get(1)
        self.assertEqual(stored.progress_percentage, 25.0)

    async def test_find_one_without_match_is_none(self):
        self.assertEqual(tuple(await self.data.users.find_one(email="nobody@demo.com")), (None, None))

    async def test_submission_rows_have_same_shape_as_live_records(self):
        row, error = await self.data.submissions.create({
            "assignment_id": 1, "user_id": 1, "submitted_at": NOW, "status": "submitted_late",
            "is_late": True, "days_late": 22, "file_paths": None,
        })
        self.assertIsNone(error)
        self.assertIsInstance(row, SubmissionRecord)
        self.assertEqual(row.file_paths, [])
        self.assertFalse(row.is_graded)

    async def test_datasets_are_independent(self):
        other = DataAccess.demo()
        await self.data.enrollments.create({"user_id": 1, "course_id": 2, "status": "active", "enrolled_at": NOW})
        rows, _ = await other.enrollments.list(course_id=2)
        self.assertEqual(rows, [])

    async def test_storage_round_trip_and_duplicate_path(self):
        stored, error = await self.data.storage.upload("assignments/1/1/a.pdf", b"%PDF")
        self.assertEqual((stored, error), ("assignments/1/1/a.pdf", None))
        content, _ = await self.data.storage.download("assignments/1/1/a.pdf")
        self.assertEqual(content, b"%PDF")
        _, error = await self.data.storage.upload("assignments/1/1/a.pdf", b"again")
        self.assertIs(error.kind, ErrorKind.VALIDATION)
        _, error = await self.data.storage.download("missing.pdf")
        self.assertIsInstance(error, NotFoundError)


if __name__ == "__main__":
    unittest.main()
