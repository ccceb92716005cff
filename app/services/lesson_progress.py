import logging
from datetime import datetime, timezone
from typing import Any, Dict, Tuple, Union

from sqlalchemy.orm import Session

from app.core.constants import EnrollmentStatusEnum, LessonProgressStatusEnum
from app.core.decorators import optimistic_transaction
from app.core.exceptions import (
    EnrollmentNotFound,
    InvalidProgressRegression,
    InvalidProgressUpdate,
    InvalidSlideIndex,
    InvalidTimeSpent,
    LessonNotFound,
    NotEnrolled,
)
from app.crud.course_enrollment import course_enrollment as crud_enrollment
from app.crud.lesson import lesson as crud_lesson
from app.crud.lesson_progress import lesson_progress as crud_lesson_progress
from app.models.course_enrollment import CourseEnrollment
from app.models.lesson import Lesson
from app.models.lesson_progress import LessonProgress
from app.schemas.lesson_progress import LessonProgressUpdate
from app.schemas.user import UserContext
from app.services.enrollment import enrollment_service

logger = logging.getLogger(__name__)


class LessonProgressService:
    """Per-student, per-lesson progress with monotonic merge semantics."""

    def _get_lesson_or_raise(self, db: Session, lesson_id: int) -> Lesson:
        lesson = crud_lesson.get(db, id=lesson_id)
        if not lesson or not lesson.is_published:
            raise LessonNotFound()
        return lesson

    def _get_enrollment_for_lesson(self, db: Session, enrollment_id: int, lesson: Lesson) -> CourseEnrollment:
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if not enrollment:
            raise EnrollmentNotFound()
        if enrollment.course_id != lesson.course_id or enrollment.status == EnrollmentStatusEnum.DROPPED:
            raise NotEnrolled()
        return enrollment

    def _load(self, db: Session, enrollment_id: int, lesson_id: int) -> Tuple[CourseEnrollment, Lesson, LessonProgress]:
        lesson = self._get_lesson_or_raise(db, lesson_id)
        enrollment = self._get_enrollment_for_lesson(db, enrollment_id, lesson)

        progress = crud_lesson_progress.get_by_enrollment_and_lesson(
            db, enrollment_id=enrollment.id, lesson_id=lesson.id
        )
        if not progress:
            progress = crud_lesson_progress.create(
                db,
                obj_in={
                    "enrollment_id": enrollment.id,
                    "lesson_id": lesson.id,
                    "status": LessonProgressStatusEnum.NOT_STARTED,
                    "current_slide_index": 0,
                    "total_slides_viewed": 0,
                    "time_spent_seconds": 0,
                },
                commit=False
            )
        return enrollment, lesson, progress

    def _apply(
        self,
        progress: LessonProgress,
        *,
        total_slides_viewed: int,
        time_spent_seconds: int,
        slide_count: int,
    ) -> bool:
        """Write the merged values and derive the status.

        Returns True only when this call moved the row into COMPLETED.
        """
        previous_status = progress.status
        now = datetime.now(timezone.utc)

        progress.total_slides_viewed = total_slides_viewed
        progress.time_spent_seconds = time_spent_seconds
        progress.last_accessed_at = now

        if previous_status == LessonProgressStatusEnum.COMPLETED:
            return False

        if progress.started_at is None:
            progress.started_at = now

        if total_slides_viewed >= slide_count:
            progress.status = LessonProgressStatusEnum.COMPLETED
            if progress.completed_at is None:
                progress.completed_at = now
            return True

        if previous_status == LessonProgressStatusEnum.NOT_STARTED:
            progress.status = LessonProgressStatusEnum.IN_PROGRESS
        return False

    def _persist(self, db: Session, enrollment: CourseEnrollment, progress: LessonProgress, became_completed: bool) -> LessonProgress:
        db.add(progress)
        db.flush()
        if became_completed:
            logger.info(
                f"Lesson {progress.lesson_id} completed for enrollment {enrollment.id}"
            )
            enrollment_service.apply_lesson_completion(db, enrollment)
        return progress

    @optimistic_transaction
    def get_or_create(self, db: Session, enrollment_id: int, lesson_id: int) -> LessonProgress:
        _, _, progress = self._load(db, enrollment_id, lesson_id)
        return progress

    def get_lesson_progress(self, db: Session, enrollment_id: int, lesson_id: int) -> LessonProgress:
        """Lazily created progress. A DROPPED enrollment can still read rows it already has."""
        lesson = self._get_lesson_or_raise(db, lesson_id)
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if (
            enrollment
            and enrollment.status == EnrollmentStatusEnum.DROPPED
            and enrollment.course_id == lesson.course_id
        ):
            progress = crud_lesson_progress.get_by_enrollment_and_lesson(
                db, enrollment_id=enrollment.id, lesson_id=lesson.id
            )
            if progress:
                return progress
        return self.get_or_create(db, enrollment_id, lesson_id)

    @optimistic_transaction
    def record_slide_view(
        self,
        db: Session,
        enrollment_id: int,
        lesson_id: int,
        slide_index: int,
        seconds_spent: int,
    ) -> LessonProgress:
        if slide_index < 0:
            raise InvalidSlideIndex()
        if seconds_spent < 0:
            raise InvalidTimeSpent()

        enrollment, lesson, progress = self._load(db, enrollment_id, lesson_id)

        reached = min(slide_index + 1, lesson.slide_count)
        progress.current_slide_index = slide_index
        became_completed = self._apply(
            progress,
            total_slides_viewed=max(progress.total_slides_viewed, reached),
            time_spent_seconds=progress.time_spent_seconds + seconds_spent,
            slide_count=lesson.slide_count,
        )
        return self._persist(db, enrollment, progress, became_completed)

    @optimistic_transaction
    def set_progress(
        self,
        db: Session,
        enrollment_id: int,
        lesson_id: int,
        progress_in: Union[LessonProgressUpdate, Dict[str, Any]],
    ) -> LessonProgress:
        if isinstance(progress_in, dict):
            update_data = {k: v for k, v in progress_in.items() if v is not None}
        else:
            update_data = progress_in.model_dump(exclude_unset=True, exclude_none=True)

        unknown = set(update_data) - {"current_slide_index", "total_slides_viewed", "time_spent_seconds"}
        if unknown:
            raise InvalidProgressUpdate(f"Unsupported progress fields: {', '.join(sorted(unknown))}")
        if not update_data:
            raise InvalidProgressUpdate("At least one progress field must be provided.")
        if update_data.get("current_slide_index", 0) < 0:
            raise InvalidSlideIndex()
        if update_data.get("time_spent_seconds", 0) < 0:
            raise InvalidTimeSpent()
        if update_data.get("total_slides_viewed", 0) < 0:
            raise InvalidProgressUpdate("Slides viewed must be zero or greater.")

        enrollment, lesson, progress = self._load(db, enrollment_id, lesson_id)

        total_slides_viewed = update_data.get("total_slides_viewed", progress.total_slides_viewed)
        time_spent_seconds = update_data.get("time_spent_seconds", progress.time_spent_seconds)

        if total_slides_viewed < progress.total_slides_viewed:
            raise InvalidProgressRegression(
                f"total_slides_viewed cannot decrease from {progress.total_slides_viewed} to {total_slides_viewed}."
            )
        if time_spent_seconds < progress.time_spent_seconds:
            raise InvalidProgressRegression(
                f"time_spent_seconds cannot decrease from {progress.time_spent_seconds} to {time_spent_seconds}."
            )
        if total_slides_viewed > lesson.slide_count and total_slides_viewed != progress.total_slides_viewed:
            raise InvalidProgressUpdate(
                f"total_slides_viewed cannot exceed the lesson's {lesson.slide_count} slides."
            )

        if "current_slide_index" in update_data:
            progress.current_slide_index = update_data["current_slide_index"]

        became_completed = self._apply(
            progress,
            total_slides_viewed=total_slides_viewed,
            time_spent_seconds=time_spent_seconds,
            slide_count=lesson.slide_count,
        )
        return self._persist(db, enrollment, progress, became_completed)

    def resolve_enrollment(self, db: Session, lesson_id: int, current_user_context: UserContext) -> CourseEnrollment:
        """The caller's enrollment in the course that owns ``lesson_id``."""
        lesson = self._get_lesson_or_raise(db, lesson_id)
        enrollment = crud_enrollment.get_by_user_and_course(
            db, user_id=current_user_context.user.id, course_id=lesson.course_id
        )
        if not enrollment:
            raise NotEnrolled()
        return enrollment


lesson_progress_service = LessonProgressService()
