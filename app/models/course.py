from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import CourseStatusEnum

class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)
    status = Column(Enum(CourseStatusEnum), nullable=False, default=CourseStatusEnum.DRAFT)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    teacher = relationship("User", back_populates="teaching_courses")
    lessons = relationship(
        "Lesson",
        primaryjoin="and_(Course.id == Lesson.course_id, Lesson.deleted_at == None)",
        back_populates="course",
        order_by="Lesson.lesson_order",
        cascade="all, delete-orphan"
    )
    enrollments = relationship("CourseEnrollment", back_populates="course")

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatusEnum.PUBLISHED and self.deleted_at is None
