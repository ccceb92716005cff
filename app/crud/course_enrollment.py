from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from app.crud.base import CRUDBase
from app.core.constants import EnrollmentStatusEnum
from app.models.course_enrollment import CourseEnrollment
from app.schemas.course_enrollment import CourseEnrollmentCreate
from pydantic import BaseModel

class CRUDCourseEnrollment(CRUDBase[CourseEnrollment, CourseEnrollmentCreate, BaseModel]):

    def get(self, db: Session, id: int) -> Optional[CourseEnrollment]:
        return db.query(CourseEnrollment).filter(CourseEnrollment.id == id).first()

    def get_by_user_and_course(self, db: Session, user_id: int, course_id: int) -> Optional[CourseEnrollment]:
        return (
            db.query(CourseEnrollment)
            .filter(CourseEnrollment.user_id == user_id)
            .filter(CourseEnrollment.course_id == course_id)
            .first()
        )

    def get_by_user(
        self, db: Session, user_id: int, status: Optional[EnrollmentStatusEnum] = None,
        skip: int = 0, limit: int = 100
    ) -> List[CourseEnrollment]:
        query = db.query(CourseEnrollment).filter(CourseEnrollment.user_id == user_id)
        if status is not None:
            query = query.filter(CourseEnrollment.status == status)
        return (
            query
            .order_by(
                CourseEnrollment.last_accessed_at.is_(None),
                CourseEnrollment.last_accessed_at.desc(),
                CourseEnrollment.id.desc()
            )
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_by_course(self, db: Session, course_id: int, skip: int = 0, limit: int = 100) -> List[CourseEnrollment]:
        return (
            db.query(CourseEnrollment)
            .options(selectinload(CourseEnrollment.user))
            .filter(CourseEnrollment.course_id == course_id)
            .order_by(CourseEnrollment.enrolled_at.desc(), CourseEnrollment.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

course_enrollment = CRUDCourseEnrollment(CourseEnrollment)
