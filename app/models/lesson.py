from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import LessonStatusEnum

class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    status = Column(Enum(LessonStatusEnum), nullable=False, default=LessonStatusEnum.DRAFT)
    lesson_order = Column(Integer, nullable=False, default=0)
    slide_count = Column(Integer, nullable=False, default=0)
    estimated_minutes = Column(Integer, nullable=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    course = relationship("Course", back_populates="lessons")
    progress_records = relationship("LessonProgress", back_populates="lesson")

    @property
    def is_published(self) -> bool:
        return self.status == LessonStatusEnum.PUBLISHED and self.deleted_at is None
