import pytest

from app.core.constants import LessonProgressStatusEnum, LessonStatusEnum
from app.core.exceptions import (
    EnrollmentNotFound,
    InvalidProgressRegression,
    InvalidProgressUpdate,
    InvalidSlideIndex,
    InvalidTimeSpent,
    LessonNotFound,
    NotEnrolled,
)
from app.crud.lesson_progress import lesson_progress as crud_lesson_progress
from app.schemas.lesson_progress import LessonProgressUpdate
from app.services.enrollment import enrollment_service
from app.services.lesson_progress import lesson_progress_service


@pytest.fixture
def enrolled(student, course_factory, enroll):
    course = course_factory(slide_counts=(3,))
    enrollment = enroll(student, course)
    return enrollment, course.lessons[0]


def test_get_or_create_is_lazy_and_stable(db_session, enrolled):
    enrollment, lesson = enrolled
    assert crud_lesson_progress.get_by_enrollment_and_lesson(db_session, enrollment.id, lesson.id) is None

    first = lesson_progress_service.get_or_create(db_session, enrollment.id, lesson.id)
    second = lesson_progress_service.get_lesson_progress(db_session, enrollment.id, lesson.id)

    assert first.id == second.id
    assert first.status == LessonProgressStatusEnum.NOT_STARTED
    assert first.total_slides_viewed == 0
    assert first.time_spent_seconds == 0
    assert first.started_at is None
    assert len(crud_lesson_progress.get_all_by_enrollment(db_session, enrollment.id)) == 1


def test_first_view_moves_to_in_progress(db_session, enrolled):
    enrollment, lesson = enrolled

    progress = lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 0, 12)

    assert progress.status == LessonProgressStatusEnum.IN_PROGRESS
    assert progress.total_slides_viewed == 1
    assert progress.current_slide_index == 0
    assert progress.time_spent_seconds == 12
    assert progress.started_at is not None
    assert progress.completed_at is None


def test_out_of_order_views_complete_the_lesson(db_session, enrolled):
    enrollment, lesson = enrolled

    progress = lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 2, 30)
    assert progress.total_slides_viewed == 3
    assert progress.status == LessonProgressStatusEnum.COMPLETED
    completed_at = progress.completed_at

    lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 0, 20)
    progress = lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 1, 25)

    assert progress.total_slides_viewed == 3
    assert progress.time_spent_seconds == 75
    assert progress.status == LessonProgressStatusEnum.COMPLETED
    assert progress.completed_at == completed_at


def test_slides_viewed_never_decreases(db_session, student, course_factory, enroll):
    course = course_factory(slide_counts=(10,))
    enrollment = enroll(student, course)
    lesson = course.lessons[0]

    observed = []
    for slide_index in (4, 1, 6, 0, 5, 2):
        progress = lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, slide_index, 1)
        observed.append(progress.total_slides_viewed)

    assert observed == [5, 5, 7, 7, 7, 7]
    assert progress.current_slide_index == 2
    assert progress.status == LessonProgressStatusEnum.IN_PROGRESS


def test_slide_index_beyond_lesson_is_clamped(db_session, enrolled):
    enrollment, lesson = enrolled

    progress = lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 9, 5)

    assert progress.total_slides_viewed == lesson.slide_count
    assert progress.current_slide_index == 9
    assert progress.status == LessonProgressStatusEnum.COMPLETED


def test_completion_is_idempotent(db_session, enrolled):
    enrollment, lesson = enrolled
    lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 2, 10)
    db_session.refresh(enrollment)
    completed_at = enrollment.completed_at
    version = enrollment.version_id

    progress = lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 2, 10)
    db_session.refresh(enrollment)

    assert progress.status == LessonProgressStatusEnum.COMPLETED
    assert progress.time_spent_seconds == 20
    assert enrollment.lessons_completed == 1
    assert enrollment.completed_at == completed_at
    # A repeat completion does not touch the enrollment row again.
    assert enrollment.version_id == version


def test_zero_slide_lesson_completes_on_first_write(db_session, student, course_factory, enroll):
    course = course_factory(slide_counts=(0,))
    enrollment = enroll(student, course)

    progress = lesson_progress_service.set_progress(
        db_session, enrollment.id, course.lessons[0].id, {"time_spent_seconds": 4}
    )

    assert progress.status == LessonProgressStatusEnum.COMPLETED
    assert progress.total_slides_viewed == 0


@pytest.mark.parametrize("slide_index, seconds, error", [
    (-1, 0, InvalidSlideIndex),
    (0, -5, InvalidTimeSpent),
])
def test_record_slide_view_rejects_negative_input(db_session, enrolled, slide_index, seconds, error):
    enrollment, lesson = enrolled

    with pytest.raises(error):
        lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, slide_index, seconds)

    assert crud_lesson_progress.get_by_enrollment_and_lesson(db_session, enrollment.id, lesson.id) is None


def test_set_progress_advances_and_derives_status(db_session, enrolled):
    enrollment, lesson = enrolled

    progress = lesson_progress_service.set_progress(
        db_session, enrollment.id, lesson.id,
        LessonProgressUpdate(current_slide_index=1, total_slides_viewed=2, time_spent_seconds=40)
    )
    assert progress.status == LessonProgressStatusEnum.IN_PROGRESS

    progress = lesson_progress_service.set_progress(
        db_session, enrollment.id, lesson.id, LessonProgressUpdate(total_slides_viewed=3)
    )
    assert progress.status == LessonProgressStatusEnum.COMPLETED
    assert progress.time_spent_seconds == 40
    assert progress.current_slide_index == 1


@pytest.mark.parametrize("update", [
    {"total_slides_viewed": 1},
    {"time_spent_seconds": 10},
])
def test_set_progress_rejects_regression(db_session, enrolled, update):
    enrollment, lesson = enrolled
    lesson_progress_service.set_progress(
        db_session, enrollment.id, lesson.id, {"total_slides_viewed": 2, "time_spent_seconds": 30}
    )

    with pytest.raises(InvalidProgressRegression):
        lesson_progress_service.set_progress(db_session, enrollment.id, lesson.id, update)

    progress = crud_lesson_progress.get_by_enrollment_and_lesson(db_session, enrollment.id, lesson.id)
    assert progress.total_slides_viewed == 2
    assert progress.time_spent_seconds == 30


@pytest.mark.parametrize("update", [
    {"status": "completed"},
    {},
    {"total_slides_viewed": 4},
])
def test_set_progress_rejects_invalid_updates(db_session, enrolled, update):
    enrollment, lesson = enrolled

    with pytest.raises(InvalidProgressUpdate):
        lesson_progress_service.set_progress(db_session, enrollment.id, lesson.id, update)


def test_unpublished_lesson_is_not_found(db_session, enrolled):
    enrollment, lesson = enrolled
    lesson.status = LessonStatusEnum.DRAFT
    db_session.commit()

    with pytest.raises(LessonNotFound):
        lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 0, 1)


def test_missing_lesson_and_enrollment(db_session, enrolled):
    enrollment, lesson = enrolled

    with pytest.raises(LessonNotFound):
        lesson_progress_service.get_or_create(db_session, enrollment.id, 9999)
    with pytest.raises(EnrollmentNotFound):
        lesson_progress_service.get_or_create(db_session, 9999, lesson.id)


def test_lesson_of_another_course_is_rejected(db_session, enrolled, course_factory):
    enrollment, _ = enrolled
    other_course = course_factory(slide_counts=(2,))

    with pytest.raises(NotEnrolled):
        lesson_progress_service.record_slide_view(db_session, enrollment.id, other_course.lessons[0].id, 0, 1)


def test_dropped_enrollment_cannot_record_progress(db_session, enrolled):
    enrollment, lesson = enrolled
    enrollment_service.unenroll(db_session, enrollment.id)

    with pytest.raises(NotEnrolled):
        lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 0, 1)


def test_dropped_enrollment_can_read_existing_progress(db_session, enrolled):
    enrollment, lesson = enrolled
    lesson_progress_service.record_slide_view(db_session, enrollment.id, lesson.id, 1, 15)
    enrollment_service.unenroll(db_session, enrollment.id)

    progress = lesson_progress_service.get_lesson_progress(db_session, enrollment.id, lesson.id)

    assert progress.total_slides_viewed == 2
    assert progress.time_spent_seconds == 15


def test_dropped_enrollment_does_not_create_progress(db_session, student, course_factory, enroll):
    course = course_factory(slide_counts=(2, 2))
    enrollment = enroll(student, course)
    enrollment_service.unenroll(db_session, enrollment.id)

    with pytest.raises(NotEnrolled):
        lesson_progress_service.get_lesson_progress(db_session, enrollment.id, course.lessons[1].id)

    assert crud_lesson_progress.get_all_by_enrollment(db_session, enrollment.id) == []
