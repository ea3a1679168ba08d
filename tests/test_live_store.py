"""SqlRepository error mapping, exercised with an in-process fake session."""

import unittest
from datetime import datetime, timezone
from types import SimpleNamespace

from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from academy.data import errors
from academy.data.errors import ConflictError, ErrorKind
from academy.data.live import SqlRepository, classify_fault
from academy.data.records import EnrollmentRecord
from academy.db import models

ENROLLED_AT = datetime(2024, 1, 20, 9, tzinfo=timezone.utc)


class _FakeResult:
    def __init__(self, rows, rowcount=0):
        self.rows = list(rows)
        self.rowcount = rowcount

    def scalars(self):
        return self

    def all(self):
        return self.rows


class _FakeBackend:
    """Holds rows and scripted failures shared by every session it opens."""

    def __init__(self, rows=None):
        self.rows = dict(rows or {})
        self.get_error = None
        self.execute_error = None
        self.commit_error = None
        self.rolled_back = 0
        self.update_rowcount = 1
        self.statements = []

    def __call__(self):
        return _FakeSession(self)


class _FakeSession:
    def __init__(self, backend):
        self.backend = backend
        self.pending = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def get(self, model, row_id, **options):
        if self.backend.get_error:
            raise self.backend.get_error
        return self.backend.rows.get(row_id)

    async def execute(self, query):
        if self.backend.execute_error:
            raise self.backend.execute_error
        self.backend.statements.append(query)
        return _FakeResult(self.backend.rows.values(), rowcount=self.backend.update_rowcount)

    def add(self, row):
        self.pending = row

    async def commit(self):
        if self.backend.commit_error:
            raise self.backend.commit_error
        if self.pending is not None:
            self.pending.id = max(self.backend.rows, default=0) + 1
            self.backend.rows[self.pending.id] = self.pending
            self.pending = None

    async def rollback(self):
        self.backend.rolled_back += 1
        self.pending = None

    async def refresh(self, row):
        return None


def _enrollment(**overrides):
    values = dict(id=1, user_id=1, course_id=1, status="active", progress_percentage=0.0,
                  enrolled_at=ENROLLED_AT, completed_at=None)
    values.update(overrides)
    return SimpleNamespace(**values)


def _repository(backend):
    return SqlRepository(backend, models.Enrollment, EnrollmentRecord, ("user_id", "course_id"),
                         entity="enrollments")


class SqlRepositoryTests(unittest.IsolatedAsyncioTestCase):
    async def test_get_validates_row_into_record(self):
        repo = _repository(_FakeBackend({1: _enrollment()}))
        row, error = await repo.get(1)
        self.assertIsNone(error)
        self.assertIsInstance(row, EnrollmentRecord)
        self.assertEqual(row.enrolled_at, ENROLLED_AT)

    async def test_get_missing_row_is_not_found(self):
        row, error = await _repository(_FakeBackend()).get(7)
        self.assertIsNone(row)
        self.assertIs(error.kind, ErrorKind.NOT_FOUND)

    async def test_unreachable_backend_is_transient(self):
        backend = _FakeBackend()
        backend.get_error = OperationalError("SELECT", {}, ConnectionRefusedError("refused"))
        row, error = await _repository(backend).get(1)
        self.assertIsNone(row)
        self.assertIs(error.kind, ErrorKind.TRANSIENT)

    async def test_list_failure_is_reported_not_empty_success(self):
        backend = _FakeBackend()
        backend.execute_error = OperationalError("SELECT", {}, TimeoutError())
        rows, error = await _repository(backend).list(user_id=1)
        self.assertEqual(rows, [])
        self.assertIsNotNone(error)
        self.assertIs(error.kind, ErrorKind.TRANSIENT)

    async def test_malformed_row_is_fatal(self):
        repo = _repository(_FakeBackend({1: _enrollment(user_id=None)}))
        row, error = await repo.get(1)
        self.assertIsNone(row)
        self.assertIs(error.kind, ErrorKind.FATAL)

    async def test_unknown_order_column_is_fatal(self):
        rows, error = await _repository(_FakeBackend()).list(order_by="no_such_column")
        self.assertEqual(rows, [])
        self.assertIs(error.kind, ErrorKind.FATAL)

    async def test_create_returns_inserted_row(self):
        backend = _FakeBackend()
        row, error = await _repository(backend).create(
            {"user_id": 2, "course_id": 1, "status": "active", "progress_percentage": 0.0,
             "enrolled_at": ENROLLED_AT}
        )
        self.assertIsNone(error)
        self.assertEqual(row.id, 1)
        self.assertEqual(len(backend.rows), 1)

    async def test_unique_violation_is_conflict_carrying_existing_row(self):
        backend = _FakeBackend({1: _enrollment()})
        backend.commit_error = IntegrityError("INSERT", {}, Exception("duplicate key"))
        row, error = await _repository(backend).create(
            {"user_id": 1, "course_id": 1, "status": "active", "enrolled_at": ENROLLED_AT}
        )
        self.assertIsNone(row)
        self.assertIsInstance(error, ConflictError)
        self.assertEqual(error.existing.id, 1)
        self.assertEqual(backend.rolled_back, 1)

    async def test_other_database_errors_are_fatal(self):
        backend = _FakeBackend({1: _enrollment()})
        backend.commit_error = ProgrammingError("UPDATE", {}, Exception("syntax"))
        row, error = await _repository(backend).update(1, {"status": "completed"})
        self.assertIsNone(row)
        self.assertIs(error.kind, ErrorKind.FATAL)

    async def test_update_sets_changed_columns(self):
        backend = _FakeBackend({1: _enrollment()})
        row, error = await _repository(backend).update(1, {"progress_percentage": 75.0, "id": 99})
        self.assertIsNone(error)
        self.assertEqual(row.id, 1)
        self.assertEqual(backend.rows[1].progress_percentage, 75.0)

    async def test_guarded_update_puts_expectation_in_where_clause(self):
        backend = _FakeBackend({1: _enrollment()})
        row, error = await _repository(backend).update(1, {"progress_percentage": 10.0}, expect={"status": "active"})
        self.assertIsNone(error)
        self.assertEqual(row.id, 1)
        statement = str(backend.statements[-1])
        self.assertIn("UPDATE enrollments", statement)
        self.assertIn("enrollments.status", statement)

    async def test_guarded_update_on_changed_row_is_stale_conflict(self):
        backend = _FakeBackend({1: _enrollment(status="completed")})
        backend.update_rowcount = 0
        row, error = await _repository(backend).update(1, {"progress_percentage": 10.0}, expect={"status": "active"})
        self.assertIsNone(row)
        self.assertIsInstance(error, ConflictError)
        self.assertEqual(error.code, errors.STALE_ROW)
        self.assertEqual(error.existing.status.value, "completed")

    async def test_integrity_error_without_duplicate_carries_no_row(self):
        backend = _FakeBackend()
        backend.commit_error = IntegrityError("INSERT", {}, Exception("foreign key violation"))
        row, error = await _repository(backend).create(
            {"user_id": 1, "course_id": 99, "status": "active", "enrolled_at": ENROLLED_AT}
        )
        self.assertIsNone(row)
        self.assertIsInstance(error, ConflictError)
        self.assertIsNone(error.existing)


class ClassifyFaultTests(unittest.TestCase):
    def test_connection_errors_are_transient(self):
        self.assertIs(classify_fault(ConnectionResetError(), "users").kind, ErrorKind.TRANSIENT)

    def test_unexpected_errors_are_fatal(self):
        self.assertIs(classify_fault(ValueError("bad"), "users").kind, ErrorKind.FATAL)


if __name__ == "__main__":
    unittest.main()
