from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class LessonCompleteRequest(BaseModel):
    course_id: int
    unit_id: int


class LessonCompleteOut(BaseModel):
    detail: str
    progress_percentage: float


class UnitProgressOut(BaseModel):
    unit_id: int
    title: str
    content_type: Optional[str] = None
    order_index: int
    is_completed: bool
    completed_at: Optional[datetime] = None


class CourseProgressOut(BaseModel):
    enrolled: bool
    content_progress: List[UnitProgressOut] = []
    completed_count: int = 0
    total_count: int = 0
    progress_percentage: float = 0.0


class UnitProgressUpdate(BaseModel):
    course_id: int
    position: float = Field(ge=0)
    watched_duration: float = Field(default=0.0, ge=0)
    total_duration: float = Field(default=0.0, ge=0)
    is_completed: bool = False


class WatchProgressOut(BaseModel):
    unit_id: int
    course_id: int
    last_position: float
    watched_duration: float
    total_duration: float
    completed_at: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class CourseUnitProgressOut(BaseModel):
    unit_id: int
    title: str
    content_type: Optional[str] = None
    duration_minutes: Optional[int] = None
    progress: Optional[WatchProgressOut] = None
    completion_percentage: int = 0
    is_completed: bool = False


class SessionCreate(BaseModel):
    course_id: int
    unit_id: Optional[int] = None
    duration_minutes: float = Field(ge=0)
    started_at: Optional[datetime] = None


class SessionOut(BaseModel):
    id: int
    course_id: int
    unit_id: Optional[int] = None
    started_at: datetime
    duration_minutes: float

    class Config:
        from_attributes = True


class ActivityGroup(BaseModel):
    count: int
    duration: float


class LearningAnalyticsOut(BaseModel):
    total_sessions: int
    total_time_minutes: float
    by_content_type: Dict[str, ActivityGroup]
    by_day: Dict[str, ActivityGroup]
    most_active_day: Optional[str] = None
    average_session_length: int
