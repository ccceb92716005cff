from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Optional
from datetime import datetime

from app.core.constants import LessonProgressStatusEnum
from app.schemas.lesson import LessonSummary
from app.utils.calculations import percentage


class SlideViewCreate(BaseModel):
    slide_index: int = Field(..., ge=0)
    time_spent_seconds: int = Field(..., ge=0)


class LessonProgressUpdate(BaseModel):
    """Direct progress update. ``status`` is always derived, never set."""
    current_slide_index: Optional[int] = Field(None, ge=0)
    total_slides_viewed: Optional[int] = Field(None, ge=0)
    time_spent_seconds: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode='before')
    @classmethod
    def at_least_one_value(cls, data: Any):
        if isinstance(data, dict) and not any(v is not None for v in data.values()):
            raise ValueError("At least one field must be provided for update")
        return data


class LessonProgress(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    enrollment_id: int
    lesson_id: int
    status: LessonProgressStatusEnum
    current_slide_index: int
    total_slides_viewed: int
    time_spent_seconds: int
    completion_percentage: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    lesson: Optional[LessonSummary] = None

    @model_validator(mode='after')
    def derive_completion_percentage(self):
        if self.lesson is not None:
            self.completion_percentage = percentage(self.total_slides_viewed, self.lesson.slide_count)
        return self
