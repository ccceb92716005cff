from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session

from app.core.constants import LessonProgressStatusEnum
from app.core.exceptions import EnrollmentNotFound
from app.crud.course_enrollment import course_enrollment as crud_enrollment
from app.crud.lesson import lesson as crud_lesson
from app.crud.lesson_progress import lesson_progress as crud_lesson_progress
from app.schemas.course_progress import CourseProgressReport, LessonProgressItem
from app.utils.calculations import percentage, round_half_up


class CourseProgressService:
    """Read-only course progress report. Never writes."""

    @staticmethod
    def _estimate_remaining_seconds(
        total_estimated_minutes: int, total_lessons: int, lessons_completed: int
    ) -> Optional[int]:
        # Linear across lessons; partial progress inside a lesson is not weighted.
        if total_lessons <= 0:
            return None
        remaining = Decimal(total_estimated_minutes * 60 * (total_lessons - lessons_completed)) / Decimal(total_lessons)
        return round_half_up(remaining)

    def get_course_progress(self, db: Session, enrollment_id: int) -> CourseProgressReport:
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if not enrollment:
            raise EnrollmentNotFound()

        lessons = crud_lesson.get_published_by_course(db, course_id=enrollment.course_id)
        rows = crud_lesson_progress.get_all_by_enrollment(db, enrollment_id=enrollment.id)
        progress_by_lesson = {row.lesson_id: row for row in rows}

        counts = {status: 0 for status in LessonProgressStatusEnum}
        items = []
        for lesson in lessons:
            row = progress_by_lesson.get(lesson.id)
            status = row.status if row else LessonProgressStatusEnum.NOT_STARTED
            slides_viewed = row.total_slides_viewed if row else 0
            counts[status] += 1
            items.append(LessonProgressItem(
                lesson_id=lesson.id,
                title=lesson.title,
                lesson_order=lesson.lesson_order,
                status=status,
                total_slides_viewed=slides_viewed,
                slide_count=lesson.slide_count,
                completion_percentage=percentage(slides_viewed, lesson.slide_count),
                time_spent_seconds=row.time_spent_seconds if row else 0,
                started_at=row.started_at if row else None,
                completed_at=row.completed_at if row else None,
            ))

        total_lessons = len(lessons)
        lessons_completed = counts[LessonProgressStatusEnum.COMPLETED]
        total_estimated_minutes = sum(lesson.estimated_minutes or 0 for lesson in lessons)

        return CourseProgressReport(
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
            enrollment_status=enrollment.status,
            total_lessons=total_lessons,
            lessons_completed=lessons_completed,
            lessons_in_progress=counts[LessonProgressStatusEnum.IN_PROGRESS],
            lessons_not_started=counts[LessonProgressStatusEnum.NOT_STARTED],
            overall_completion_percentage=enrollment.progress_percentage,
            total_time_spent_seconds=sum(row.time_spent_seconds for row in rows),
            estimated_time_remaining_seconds=self._estimate_remaining_seconds(
                total_estimated_minutes, total_lessons, lessons_completed
            ),
            last_accessed_at=enrollment.last_accessed_at,
            lesson_progress=sorted(items, key=lambda item: (item.lesson_order, item.lesson_id)),
        )


course_progress_service = CourseProgressService()
