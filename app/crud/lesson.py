from sqlalchemy.orm import Session, selectinload
from typing import Any, List, Optional

from app.crud.base import CRUDBase
from app.core.constants import LessonStatusEnum
from app.models.lesson import Lesson
from pydantic import BaseModel

class CRUDLesson(CRUDBase[Lesson, BaseModel, BaseModel]):
    def get(self, db: Session, id: Any) -> Optional[Lesson]:
        query = db.query(self.model).filter(self.model.id == id, self.model.deleted_at == None)
        return query.options(selectinload(self.model.course)).first()

    def _query_published(self, db: Session, course_id: int):
        return db.query(self.model).filter(
            self.model.course_id == course_id,
            self.model.status == LessonStatusEnum.PUBLISHED,
            self.model.deleted_at == None
        )

    def get_published_by_course(self, db: Session, *, course_id: int) -> List[Lesson]:
        return self._query_published(db, course_id).order_by(self.model.lesson_order, self.model.id).all()

    def count_published_by_course(self, db: Session, *, course_id: int) -> int:
        return self._query_published(db, course_id).count()

lesson = CRUDLesson(Lesson)
