"""Error kinds shared by the data access layer and the domain services.

Errors are carried as values in ``Result`` pairs rather than raised across
the facade. Each class still derives from ``Exception`` so a caller that
wants to fail hard can simply ``raise result.error``.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    FATAL = "fatal"


class AcademyError(Exception):
    """Base class for every error the core reports."""

    kind: ErrorKind = ErrorKind.FATAL
    default_code = "Error"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class NotFoundError(AcademyError):
    """Expected absence of a row."""

    kind = ErrorKind.NOT_FOUND
    default_code = "NotFound"

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class ValidationError(AcademyError):
    """A domain rule refused the operation."""

    kind = ErrorKind.VALIDATION
    default_code = "Validation"


class ConflictError(AcademyError):
    """A uniqueness constraint was hit. ``existing`` holds the row that won."""

    kind = ErrorKind.CONFLICT
    default_code = "DuplicateRow"

    def __init__(self, message: str, existing: Any = None, code: Optional[str] = None):
        self.existing = existing
        super().__init__(message, code=code)


class TransientError(AcademyError):
    """Backend unavailable; the caller may retry."""

    kind = ErrorKind.TRANSIENT
    default_code = "Transient"


class FatalError(AcademyError):
    """Backend returned data the core cannot interpret."""

    kind = ErrorKind.FATAL
    default_code = "Fatal"


# Validation codes
SCORE_OUT_OF_RANGE = "ScoreOutOfRange"
COURSE_INACTIVE = "CourseInactive"
NOT_ENROLLED = "NotEnrolled"
UNIT_NOT_IN_COURSE = "UnitNotInCourse"
ALREADY_GRADED = "AlreadyGraded"
ASSIGNMENT_CLOSED = "AssignmentClosed"
FILE_TOO_LARGE = "FileTooLarge"
FILE_TYPE_NOT_ALLOWED = "FileTypeNotAllowed"
INVALID_PROGRESS = "InvalidProgress"

# Conflict codes
ALREADY_ENROLLED = "AlreadyEnrolled"
STALE_ROW = "StaleRow"
