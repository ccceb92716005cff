from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.utils import deps
from app.core.database import get_db
from app.schemas.course_progress import CourseProgressReport
from app.schemas.lesson_progress import LessonProgress, LessonProgressUpdate, SlideViewCreate
from app.schemas.user import UserContext
from app.services.course_progress import course_progress_service
from app.services.enrollment import enrollment_service
from app.services.lesson_progress import lesson_progress_service
from app.utils.permission import PermissionHelper as permission_helper

router = APIRouter()


@router.get("/lessons/{lesson_id}/progress", response_model=APIResponse[LessonProgress])
def get_lesson_progress(
    *,
    db: Session = Depends(get_db),
    lesson_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    permission_helper.require_student(context)
    enrollment = lesson_progress_service.resolve_enrollment(db, lesson_id=lesson_id, current_user_context=context)
    progress = lesson_progress_service.get_lesson_progress(db, enrollment_id=enrollment.id, lesson_id=lesson_id)
    return APIResponse(message="Lesson progress retrieved successfully", data=LessonProgress.model_validate(progress))


@router.post("/lessons/{lesson_id}/progress", response_model=APIResponse[LessonProgress])
def update_lesson_progress(
    *,
    db: Session = Depends(get_db),
    lesson_id: int,
    progress_in: LessonProgressUpdate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    permission_helper.require_student(context)
    enrollment = lesson_progress_service.resolve_enrollment(db, lesson_id=lesson_id, current_user_context=context)
    progress = lesson_progress_service.set_progress(
        db, enrollment_id=enrollment.id, lesson_id=lesson_id, progress_in=progress_in
    )
    return APIResponse(message="Lesson progress updated successfully", data=LessonProgress.model_validate(progress))


@router.post("/lessons/{lesson_id}/slides/view", response_model=APIResponse[LessonProgress])
def record_slide_view(
    *,
    db: Session = Depends(get_db),
    lesson_id: int,
    view_in: SlideViewCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    permission_helper.require_student(context)
    enrollment = lesson_progress_service.resolve_enrollment(db, lesson_id=lesson_id, current_user_context=context)
    progress = lesson_progress_service.record_slide_view(
        db,
        enrollment_id=enrollment.id,
        lesson_id=lesson_id,
        slide_index=view_in.slide_index,
        seconds_spent=view_in.time_spent_seconds
    )
    return APIResponse(message="Slide view recorded successfully", data=LessonProgress.model_validate(progress))


@router.get("/courses/{course_id}/progress", response_model=APIResponse[CourseProgressReport])
def get_course_progress(
    *,
    db: Session = Depends(get_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    permission_helper.require_student(context)
    enrollment = enrollment_service.get_enrollment_for_course(db, course_id=course_id, current_user_context=context)
    report = course_progress_service.get_course_progress(db, enrollment_id=enrollment.id)
    return APIResponse(message="Course progress retrieved successfully", data=report)


@router.get("/enrollments/{enrollment_id}/progress", response_model=APIResponse[CourseProgressReport])
def get_enrollment_progress(
    *,
    db: Session = Depends(get_db),
    enrollment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    permission_helper.require_student(context)
    enrollment = enrollment_service.get_owned_enrollment(db, enrollment_id=enrollment_id, current_user_context=context)
    report = course_progress_service.get_course_progress(db, enrollment_id=enrollment.id)
    return APIResponse(message="Course progress retrieved successfully", data=report)
