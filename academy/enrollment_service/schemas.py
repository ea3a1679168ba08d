from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from academy.data.records import EnrollmentStatus


class EnrollmentOut(BaseModel):
    id: int
    user_id: int
    course_id: int
    status: EnrollmentStatus
    progress_percentage: float
    enrolled_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EnrollmentStatusOut(BaseModel):
    course_id: int
    is_enrolled: bool


class EnrollmentStats(BaseModel):
    active: int = 0
    completed: int = 0
    total: int = 0
    recent_enrollments: int = 0
