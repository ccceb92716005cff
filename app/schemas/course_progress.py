from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from app.core.constants import EnrollmentStatusEnum, LessonProgressStatusEnum


class LessonProgressItem(BaseModel):
    lesson_id: int
    title: str
    lesson_order: int
    status: LessonProgressStatusEnum
    total_slides_viewed: int
    slide_count: int
    completion_percentage: int
    time_spent_seconds: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CourseProgressReport(BaseModel):
    course_id: int
    enrollment_id: int
    enrollment_status: EnrollmentStatusEnum
    total_lessons: int
    lessons_completed: int
    lessons_in_progress: int
    lessons_not_started: int
    overall_completion_percentage: int
    total_time_spent_seconds: int
    estimated_time_remaining_seconds: Optional[int] = None
    last_accessed_at: Optional[datetime] = None
    lesson_progress: List[LessonProgressItem] = []
