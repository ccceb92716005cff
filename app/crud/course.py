from sqlalchemy.orm import Session
from typing import Optional

from app.crud.base import CRUDBase
from app.models.course import Course
from pydantic import BaseModel


class CRUDCourse(CRUDBase[Course, BaseModel, BaseModel]):

    def get(self, db: Session, id: int) -> Optional[Course]:
        return db.query(Course).filter(Course.id == id, Course.deleted_at.is_(None)).first()


course = CRUDCourse(Course)
