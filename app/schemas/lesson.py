from pydantic import BaseModel, ConfigDict
from typing import Optional


class LessonSummary(BaseModel):
    id: int
    title: str
    lesson_order: int
    slide_count: int
    estimated_minutes: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
