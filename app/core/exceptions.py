from fastapi import HTTPException, status


class ProgressError(HTTPException):
    """Base class for progress-tracking errors.

    Subclasses pin the status code so the global exception handler can render
    them like any other ``HTTPException``.
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Progress request failed."

    def __init__(self, detail: str = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


# Validation

class InvalidSlideIndex(ProgressError):
    default_detail = "Slide index must be zero or greater."

class InvalidTimeSpent(ProgressError):
    default_detail = "Time spent must be zero or greater."

class InvalidProgressRegression(ProgressError):
    default_detail = "Progress values cannot move backwards."

class InvalidProgressUpdate(ProgressError):
    default_detail = "Invalid progress update."


# Not found

class LessonNotFound(ProgressError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Lesson not found."

class EnrollmentNotFound(ProgressError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Enrollment not found."

class CourseNotFound(ProgressError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Course not found."


# Permission denied

class NotEnrolled(ProgressError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not enrolled in this course."

class NotEnrollmentOwner(ProgressError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have access to this enrollment."

class NotCourseTeacher(ProgressError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only the course teacher can perform this action."

class StudentRoleRequired(ProgressError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only students can perform this action."


# Conflict

class AlreadyEnrolled(ProgressError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already enrolled in this course."

class ConcurrentUpdateConflict(ProgressError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The record was modified concurrently. Please retry."


# Precondition

class CourseNotPublished(ProgressError):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    default_detail = "Course is not published."
