from sqlalchemy.orm import Session
from typing import List, Optional

from app.crud.base import CRUDBase
from app.core.constants import LessonProgressStatusEnum, LessonStatusEnum
from app.models.lesson import Lesson
from app.models.lesson_progress import LessonProgress
from pydantic import BaseModel

class CRUDLessonProgress(CRUDBase[LessonProgress, BaseModel, BaseModel]):

    def get_by_enrollment_and_lesson(self, db: Session, enrollment_id: int, lesson_id: int) -> Optional[LessonProgress]:
        return (
            db.query(LessonProgress)
            .filter(LessonProgress.enrollment_id == enrollment_id)
            .filter(LessonProgress.lesson_id == lesson_id)
            .first()
        )

    def get_all_by_enrollment(self, db: Session, enrollment_id: int) -> List[LessonProgress]:
        return (
            db.query(LessonProgress)
            .filter(LessonProgress.enrollment_id == enrollment_id)
            .all()
        )

    def count_completed_published(self, db: Session, enrollment_id: int, course_id: int) -> int:
        """Completed rows whose lesson is still a published lesson of ``course_id``."""
        return (
            db.query(LessonProgress)
            .join(Lesson, Lesson.id == LessonProgress.lesson_id)
            .filter(LessonProgress.enrollment_id == enrollment_id)
            .filter(LessonProgress.status == LessonProgressStatusEnum.COMPLETED)
            .filter(Lesson.course_id == course_id)
            .filter(Lesson.status == LessonStatusEnum.PUBLISHED)
            .filter(Lesson.deleted_at.is_(None))
            .count()
        )

lesson_progress = CRUDLessonProgress(LessonProgress)
