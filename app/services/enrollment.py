import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.constants import EnrollmentStatusEnum
from app.core.decorators import optimistic_transaction
from app.core.exceptions import (
    AlreadyEnrolled,
    CourseNotFound,
    CourseNotPublished,
    EnrollmentNotFound,
    NotEnrolled,
)
from app.crud.course import course as crud_course
from app.crud.course_enrollment import course_enrollment as crud_enrollment
from app.crud.lesson import lesson as crud_lesson
from app.crud.lesson_progress import lesson_progress as crud_lesson_progress
from app.models.course_enrollment import CourseEnrollment
from app.schemas.course_enrollment import CourseEnrollmentCreate
from app.schemas.user import UserContext
from app.utils.calculations import percentage
from app.utils.permission import PermissionHelper as permission_helper

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Enrollment lifecycle and the denormalized completion counters."""

    def _get_or_raise(self, db: Session, enrollment_id: int) -> CourseEnrollment:
        enrollment = crud_enrollment.get(db, id=enrollment_id)
        if not enrollment:
            raise EnrollmentNotFound()
        return enrollment

    def _recompute(self, db: Session, enrollment: CourseEnrollment) -> CourseEnrollment:
        """Recount completed lessons and settle the enrollment status.

        Must run inside the caller's transactional unit; the version check on
        the enrollment row makes concurrent recomputes retry instead of
        overwriting each other.
        """
        completed = crud_lesson_progress.count_completed_published(
            db, enrollment_id=enrollment.id, course_id=enrollment.course_id
        )
        completed = min(completed, enrollment.total_lessons)
        now = datetime.now(timezone.utc)

        enrollment.lessons_completed = completed
        enrollment.progress_percentage = percentage(completed, enrollment.total_lessons)
        enrollment.last_accessed_at = now

        if enrollment.progress_percentage == 100:
            # completed_at follows the percentage even while DROPPED.
            if enrollment.completed_at is None:
                enrollment.completed_at = now
            if enrollment.status == EnrollmentStatusEnum.ACTIVE:
                enrollment.status = EnrollmentStatusEnum.COMPLETED
                logger.info(f"Enrollment {enrollment.id} completed (course {enrollment.course_id})")

        db.add(enrollment)
        db.flush()
        return enrollment

    def apply_lesson_completion(self, db: Session, enrollment: CourseEnrollment) -> CourseEnrollment:
        """Cascade entry point used from within a lesson-progress unit."""
        return self._recompute(db, enrollment)

    @optimistic_transaction
    def recompute_on_lesson_completed(self, db: Session, enrollment_id: int) -> CourseEnrollment:
        enrollment = self._get_or_raise(db, enrollment_id)
        return self._recompute(db, enrollment)

    @optimistic_transaction
    def enroll(self, db: Session, user_id: int, course_id: int) -> CourseEnrollment:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise CourseNotFound()
        if not course.is_published:
            raise CourseNotPublished()

        now = datetime.now(timezone.utc)
        existing = crud_enrollment.get_by_user_and_course(db, user_id=user_id, course_id=course_id)
        if existing:
            if existing.status != EnrollmentStatusEnum.DROPPED:
                raise AlreadyEnrolled()

            # Counters are history and survive reactivation.
            if existing.progress_percentage == 100:
                existing.status = EnrollmentStatusEnum.COMPLETED
                if existing.completed_at is None:
                    existing.completed_at = now
            else:
                existing.status = EnrollmentStatusEnum.ACTIVE
            existing.last_accessed_at = now
            db.add(existing)
            db.flush()
            logger.info(f"Enrollment {existing.id} reactivated for user {user_id} in course {course_id}")
            return existing

        enrollment_in = CourseEnrollmentCreate(
            user_id=user_id,
            course_id=course_id,
            status=EnrollmentStatusEnum.ACTIVE,
            total_lessons=crud_lesson.count_published_by_course(db, course_id=course_id),
            last_accessed_at=now
        )
        enrollment = crud_enrollment.create(db, obj_in=enrollment_in, commit=False)
        logger.info(f"User {user_id} enrolled in course {course_id} (enrollment {enrollment.id})")
        return enrollment

    @optimistic_transaction
    def unenroll(self, db: Session, enrollment_id: int) -> None:
        enrollment = self._get_or_raise(db, enrollment_id)
        if enrollment.status == EnrollmentStatusEnum.DROPPED:
            return None
        enrollment.status = EnrollmentStatusEnum.DROPPED
        db.add(enrollment)
        db.flush()
        logger.info(f"Enrollment {enrollment.id} dropped")
        return None

    def get_enrollment(self, db: Session, enrollment_id: int) -> CourseEnrollment:
        return self._get_or_raise(db, enrollment_id)

    def get_owned_enrollment(self, db: Session, enrollment_id: int, current_user_context: UserContext) -> CourseEnrollment:
        enrollment = self.get_enrollment(db, enrollment_id)
        permission_helper.require_enrollment_owner(current_user_context, enrollment)
        return enrollment

    def get_visible_enrollment(self, db: Session, enrollment_id: int, current_user_context: UserContext) -> CourseEnrollment:
        enrollment = self.get_enrollment(db, enrollment_id)
        permission_helper.require_enrollment_view_permission(current_user_context, enrollment)
        return enrollment

    def get_enrollment_for_course(self, db: Session, course_id: int, current_user_context: UserContext) -> CourseEnrollment:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise CourseNotFound()
        enrollment = crud_enrollment.get_by_user_and_course(
            db, user_id=current_user_context.user.id, course_id=course_id
        )
        if not enrollment:
            raise NotEnrolled()
        return enrollment

    def get_student_enrollments(
        self, db: Session, user_id: int, status: Optional[EnrollmentStatusEnum] = None
    ) -> List[CourseEnrollment]:
        return crud_enrollment.get_by_user(db, user_id=user_id, status=status)

    def get_course_students(self, db: Session, course_id: int, current_user_context: UserContext) -> List[CourseEnrollment]:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise CourseNotFound()
        permission_helper.require_course_teacher(current_user_context, course)
        return crud_enrollment.get_by_course(db, course_id=course_id)


enrollment_service = EnrollmentService()
