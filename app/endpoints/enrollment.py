from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.utils import deps
from app.core.constants import EnrollmentStatusEnum
from app.core.database import get_db
from app.schemas.course_enrollment import CourseEnrollment, CourseStudent
from app.schemas.user import UserContext
from app.services.enrollment import enrollment_service
from app.utils.permission import PermissionHelper as permission_helper

router = APIRouter()


@router.post(
    "/enrollments/courses/{course_id}",
    response_model=APIResponse[CourseEnrollment],
    status_code=status.HTTP_201_CREATED
)
def enroll_in_course(
    *,
    db: Session = Depends(get_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    permission_helper.require_student(context)
    enrollment = enrollment_service.enroll(db, user_id=context.user.id, course_id=course_id)
    return APIResponse(message="Enrolled successfully", data=CourseEnrollment.model_validate(enrollment))


@router.get("/enrollments/me", response_model=APIResponse[List[CourseEnrollment]])
def get_my_enrollments(
    *,
    db: Session = Depends(get_db),
    status: Optional[EnrollmentStatusEnum] = Query(None),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollments = enrollment_service.get_student_enrollments(db, user_id=context.user.id, status=status)
    return APIResponse(
        message="Enrollments retrieved successfully",
        data=[CourseEnrollment.model_validate(e) for e in enrollments]
    )


@router.get("/enrollments/{enrollment_id}", response_model=APIResponse[CourseEnrollment])
def get_enrollment(
    *,
    db: Session = Depends(get_db),
    enrollment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollment = enrollment_service.get_visible_enrollment(db, enrollment_id=enrollment_id, current_user_context=context)
    return APIResponse(message="Enrollment retrieved successfully", data=CourseEnrollment.model_validate(enrollment))


@router.delete("/enrollments/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
def unenroll(
    *,
    db: Session = Depends(get_db),
    enrollment_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    permission_helper.require_student(context)
    enrollment = enrollment_service.get_owned_enrollment(db, enrollment_id=enrollment_id, current_user_context=context)
    enrollment_service.unenroll(db, enrollment_id=enrollment.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/courses/{course_id}/students", response_model=APIResponse[List[CourseStudent]])
def get_course_students(
    *,
    db: Session = Depends(get_db),
    course_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    enrollments = enrollment_service.get_course_students(db, course_id=course_id, current_user_context=context)
    return APIResponse(
        message="Course students retrieved successfully",
        data=[CourseStudent.model_validate(e) for e in enrollments]
    )
