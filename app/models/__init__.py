from app.models.user import User
from app.models.course import Course
from app.models.lesson import Lesson
from app.models.course_enrollment import CourseEnrollment
from app.models.lesson_progress import LessonProgress

__all__ = ["User", "Course", "Lesson", "CourseEnrollment", "LessonProgress"]
