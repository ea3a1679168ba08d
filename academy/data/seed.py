"""Demo dataset loaded at startup when no live backend is in use."""

from datetime import datetime, timezone
from functools import lru_cache

from academy.user_service.security import get_password_hash


@lru_cache(maxsize=None)
def _hash(password: str) -> str:
    return get_password_hash(password)


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)


def demo_seed():
    return {
        "users": [
            {"id": 1, "email": "student@demo.com", "full_name": "Demo Student", "role": "student",
             "password_hash": _hash("password123"), "created_at": _ts("2024-01-15T00:00:00Z")},
            {"id": 2, "email": "admin@demo.com", "full_name": "Demo Admin", "role": "admin",
             "password_hash": _hash("admin123"), "created_at": _ts("2024-01-01T00:00:00Z")},
            {"id": 3, "email": "teacher@demo.com", "full_name": "Demo Instructor", "role": "instructor",
             "password_hash": _hash("teacher123"), "created_at": _ts("2024-01-10T00:00:00Z")},
        ],
        "courses": [
            {"id": 1, "title": "Python Programming Fundamentals", "category": "Programming",
             "description": "Python from the basics up, with exercises.",
             "instructor_name": "Demo Instructor", "is_active": True, "created_at": _ts("2024-01-15T00:00:00Z")},
            {"id": 2, "title": "React.js for Beginners", "category": "Web Development",
             "description": "Build a complete web application with React.",
             "instructor_name": "Demo Instructor", "is_active": True, "created_at": _ts("2024-02-01T00:00:00Z")},
            {"id": 3, "title": "Legacy Flash Animation", "category": "Design",
             "description": "Archived course.",
             "instructor_name": "Demo Instructor", "is_active": False, "created_at": _ts("2023-05-01T00:00:00Z")},
            {"id": 4, "title": "Orientation", "category": "General",
             "description": "Welcome session with no lessons yet.",
             "instructor_name": "Demo Admin", "is_active": True, "created_at": _ts("2024-03-01T00:00:00Z")},
        ],
        "course_content": [
            {"id": 1, "course_id": 1, "title": "Installing Python", "content_type": "video",
             "order_index": 1, "duration_minutes": 12},
            {"id": 2, "course_id": 1, "title": "Variables and Types", "content_type": "video",
             "order_index": 2, "duration_minutes": 20},
            {"id": 3, "course_id": 1, "title": "Control Flow Quiz", "content_type": "quiz",
             "order_index": 3, "duration_minutes": 10},
            {"id": 4, "course_id": 1, "title": "First Program", "content_type": "assignment",
             "order_index": 4, "duration_minutes": 60},
            {"id": 5, "course_id": 2, "title": "JSX Basics", "content_type": "video",
             "order_index": 1, "duration_minutes": 18},
            {"id": 6, "course_id": 2, "title": "State and Props", "content_type": "text",
             "order_index": 2, "duration_minutes": 25},
        ],
        "enrollments": [
            {"id": 1, "user_id": 1, "course_id": 1, "status": "active", "progress_percentage": 25.0,
             "enrolled_at": _ts("2024-01-20T09:00:00Z")},
        ],
        "lesson_progress": [
            {"id": 1, "user_id": 1, "course_id": 1, "unit_id": 1, "is_completed": True,
             "completed_at": _ts("2024-01-21T10:00:00Z")},
        ],
        "video_progress": [
            {"id": 1, "user_id": 1, "course_id": 1, "unit_id": 2, "last_position": 540.0,
             "watched_duration": 600.0, "total_duration": 1200.0, "updated_at": _ts("2024-01-22T18:30:00Z")},
        ],
        "learning_sessions": [
            {"id": 1, "user_id": 1, "course_id": 1, "unit_id": 1, "started_at": _ts("2024-01-21T09:45:00Z"),
             "duration_minutes": 14.0},
            {"id": 2, "user_id": 1, "course_id": 1, "unit_id": 2, "started_at": _ts("2024-01-22T18:20:00Z"),
             "duration_minutes": 10.0},
        ],
        "assignments": [
            {"id": 1, "course_id": 1, "title": "First Program", "max_score": 100,
             "instructions": "Write a program that prints a multiplication table.",
             "due_date": _ts("2024-01-10T00:00:00Z"), "is_active": True},
            {"id": 2, "course_id": 2, "title": "Todo App", "max_score": 50,
             "instructions": "Build a todo list component.",
             "due_date": _ts("2030-12-31T23:59:59Z"), "is_active": True},
        ],
        "assignment_submissions": [],
    }
