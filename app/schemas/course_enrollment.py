from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from app.core.constants import EnrollmentStatusEnum
from app.schemas.user import UserSummary


class CourseEnrollmentBase(BaseModel):
    user_id: int
    course_id: int
    status: Optional[EnrollmentStatusEnum] = EnrollmentStatusEnum.ACTIVE


class CourseEnrollmentCreate(CourseEnrollmentBase):
    total_lessons: int = 0
    last_accessed_at: Optional[datetime] = None


class CourseEnrollment(CourseEnrollmentBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    lessons_completed: int
    total_lessons: int
    progress_percentage: int
    enrolled_at: datetime
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CourseStudent(CourseEnrollment):
    user: UserSummary
