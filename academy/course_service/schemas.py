from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class UnitOut(BaseModel):
    id: int
    title: str
    content_type: Optional[str] = None
    order_index: Optional[int] = None
    duration_minutes: Optional[int] = None

    class Config:
        from_attributes = True


class AssignmentOut(BaseModel):
    id: int
    title: str
    instructions: Optional[str] = None
    max_score: int
    due_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class CourseOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    instructor_name: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CourseDetailOut(CourseOut):
    units: List[UnitOut] = []


class CourseLearningOut(CourseDetailOut):
    assignments: List[AssignmentOut] = []
    progress_percentage: float = 0.0
