"""Per-domain repositories behind one object, chosen once for a mode."""

import logging
from typing import Optional

from academy.backend.mode import Mode
from academy.backend.storage import MemoryStorage
from academy.db import models
from academy.data.demo import DemoDataset, MemoryRepository
from academy.data.live import SqlRepository
from academy.data.records import (
    AssignmentRecord,
    CourseRecord,
    EnrollmentRecord,
    LearningSessionRecord,
    LessonProgressRecord,
    SubmissionRecord,
    UnitRecord,
    UserRecord,
    WatchProgressRecord,
)

logger = logging.getLogger("data_access")

# table name, ORM model, record type, natural key
DOMAINS = {
    "users": ("users", models.User, UserRecord, ("email",)),
    "courses": ("courses", models.Course, CourseRecord, ()),
    "units": ("course_content", models.CourseContent, UnitRecord, ()),
    "enrollments": ("enrollments", models.Enrollment, EnrollmentRecord, ("user_id", "course_id")),
    "progress": ("lesson_progress", models.LessonProgress, LessonProgressRecord, ("user_id", "course_id", "unit_id")),
    "watch_progress": ("video_progress", models.VideoProgress, WatchProgressRecord, ("user_id", "unit_id")),
    "sessions": ("learning_sessions", models.LearningSession, LearningSessionRecord, ()),
    "assignments": ("assignments", models.Assignment, AssignmentRecord, ()),
    "submissions": ("assignment_submissions", models.AssignmentSubmission, SubmissionRecord,
                    ("assignment_id", "user_id")),
}


class DataAccess:
    """Exposes ``users``, ``courses``, ``units``, ``enrollments``, ``progress``,
    ``watch_progress``, ``sessions``, ``assignments``, ``submissions`` and ``storage`` with the same contract in
    both modes.
    """

    def __init__(self, mode: Mode, handle=None, dataset: Optional[DemoDataset] = None, storage=None):
        self.mode = mode
        if mode is Mode.LIVE:
            if handle is None:
                raise ValueError("live mode requires a backend handle")
            for name, (table, model, record_cls, keys) in DOMAINS.items():
                setattr(self, name, SqlRepository(handle.session_factory, model, record_cls, keys, entity=name))
            self.storage = storage or handle.storage
            if self.storage is None:
                logger.warning("No STORAGE_URL configured, submission files are kept in memory")
                self.storage = MemoryStorage()
        else:
            self.dataset = dataset if dataset is not None else DemoDataset()
            for name, (table, model, record_cls, keys) in DOMAINS.items():
                setattr(self, name, MemoryRepository(self.dataset, table, record_cls, keys, entity=name))
            self.storage = storage or MemoryStorage()
        logger.info(f"Data access ready in {mode.value} mode")

    @classmethod
    def demo(cls, seed=None, storage=None) -> "DataAccess":
        from academy.data.seed import demo_seed
        return cls(Mode.DEMO, dataset=DemoDataset(demo_seed() if seed is None else seed), storage=storage)
