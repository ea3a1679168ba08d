from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime

from academy.data.records import SubmissionStatus


class SubmitRequest(BaseModel):
    file_paths: List[str] = []
    notes: Optional[str] = None


class GradeRequest(BaseModel):
    score: int
    feedback: Optional[str] = None


class UploadedFileOut(BaseModel):
    path: str
    original_name: str
    size: int


class SubmissionOut(BaseModel):
    id: int
    assignment_id: int
    user_id: int
    submitted_at: datetime
    file_paths: List[str] = []
    file_count: int = 0
    notes: Optional[str] = None
    status: SubmissionStatus
    is_late: bool
    days_late: int
    attempt_number: int
    score: Optional[int] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[int] = None


class GradedSubmissionOut(SubmissionOut):
    max_score: int
    percentage: int = Field(description="round(score / max_score * 100)")
    letter_grade: str


class AssignmentStatsOut(BaseModel):
    total_submissions: int
    graded_submissions: int
    average_score: int
    late_submissions: int
    on_time_submissions: int
    score_distribution: Dict[str, int]
