"""Row shapes returned by every repository, live or demo."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


DEFAULT_FILE_TYPES = ("pdf", "doc", "docx", "jpg", "png")
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class SubmissionStatus(str, Enum):
    SUBMITTED_ON_TIME = "submitted_on_time"
    SUBMITTED_LATE = "submitted_late"
    GRADED = "graded"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class Record(BaseModel):
    class Config:
        from_attributes = True

    @field_validator("*", mode="after")
    @classmethod
    def _utc(cls, value):
        # asyncpg hands back naive values for columns created without a zone
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class UserRecord(Record):
    id: int
    email: str
    full_name: str
    role: str = "student"
    password_hash: Optional[str] = None
    created_at: Optional[datetime] = None


class CourseRecord(Record):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    instructor_name: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


class UnitRecord(Record):
    id: int
    course_id: int
    title: str
    content_type: Optional[str] = None
    order_index: int = 0
    duration_minutes: Optional[int] = None


class EnrollmentRecord(Record):
    id: int
    user_id: int
    course_id: int
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    progress_percentage: float = 0.0
    enrolled_at: datetime
    completed_at: Optional[datetime] = None


class LessonProgressRecord(Record):
    id: int
    user_id: int
    course_id: int
    unit_id: int
    is_completed: bool = False
    completed_at: Optional[datetime] = None


class WatchProgressRecord(Record):
    id: int
    user_id: int
    course_id: int
    unit_id: int
    last_position: float = Field(default=0.0, ge=0)
    watched_duration: float = Field(default=0.0, ge=0)
    total_duration: float = Field(default=0.0, ge=0)
    completed_at: Optional[datetime] = None
    updated_at: datetime

    @property
    def position_percentage(self) -> int:
        if not self.total_duration:
            return 0
        return min(100, int(self.last_position / self.total_duration * 100 + 0.5))


class LearningSessionRecord(Record):
    id: int
    user_id: int
    course_id: int
    unit_id: Optional[int] = None
    started_at: datetime
    duration_minutes: float = Field(default=0.0, ge=0)


class AssignmentRecord(Record):
    id: int
    course_id: int
    title: str
    instructions: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: int = Field(gt=0)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_file_types: List[str] = Field(default_factory=lambda: list(DEFAULT_FILE_TYPES))
    is_active: bool = True

    @field_validator("allowed_file_types", mode="before")
    @classmethod
    def _default_types(cls, value):
        return list(DEFAULT_FILE_TYPES) if value is None else value


class SubmissionRecord(Record):
    id: int
    assignment_id: int
    user_id: int
    submitted_at: datetime
    file_paths: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    status: SubmissionStatus
    is_late: bool = False
    days_late: int = Field(default=0, ge=0)
    attempt_number: int = 1
    score: Optional[int] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[int] = None

    @field_validator("file_paths", mode="before")
    @classmethod
    def _no_files(cls, value):
        return [] if value is None else value

    @property
    def is_graded(self) -> bool:
        return self.score is not None
