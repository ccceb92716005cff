from app.models.course import Course
from app.models.course_enrollment import CourseEnrollment
from app.schemas.user import UserContext
from app.core.constants import RoleEnum
from app.core.exceptions import NotCourseTeacher, NotEnrollmentOwner, StudentRoleRequired


class PermissionHelper:
    @staticmethod
    def is_admin(context: UserContext) -> bool:
        return context.user.role == RoleEnum.ADMIN

    @staticmethod
    def require_student(context: UserContext) -> None:
        if context.user.role != RoleEnum.STUDENT:
            raise StudentRoleRequired()

    @staticmethod
    def is_teacher_of_course(context: UserContext, course: Course) -> bool:
        return course.teacher_id == context.user.id

    @staticmethod
    def owns_enrollment(context: UserContext, enrollment: CourseEnrollment) -> bool:
        return enrollment.user_id == context.user.id

    @staticmethod
    def can_view_enrollment(context: UserContext, enrollment: CourseEnrollment) -> bool:
        if PermissionHelper.is_admin(context):
            return True
        if PermissionHelper.owns_enrollment(context, enrollment):
            return True
        return PermissionHelper.is_teacher_of_course(context, enrollment.course)

    @staticmethod
    def require_enrollment_owner(context: UserContext, enrollment: CourseEnrollment) -> None:
        if not PermissionHelper.owns_enrollment(context, enrollment):
            raise NotEnrollmentOwner()

    @staticmethod
    def require_enrollment_view_permission(context: UserContext, enrollment: CourseEnrollment) -> None:
        if not PermissionHelper.can_view_enrollment(context, enrollment):
            raise NotEnrollmentOwner()

    @staticmethod
    def require_course_teacher(context: UserContext, course: Course) -> None:
        if PermissionHelper.is_admin(context):
            return
        if not PermissionHelper.is_teacher_of_course(context, course):
            raise NotCourseTeacher()
