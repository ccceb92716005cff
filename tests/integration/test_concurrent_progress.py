import random
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.core.config import settings
from app.core.constants import EnrollmentStatusEnum, LessonProgressStatusEnum
from app.crud.course_enrollment import course_enrollment as crud_enrollment
from app.crud.lesson_progress import lesson_progress as crud_lesson_progress
from app.services.lesson_progress import lesson_progress_service


@pytest.fixture(autouse=True)
def generous_retry_budget(monkeypatch):
    monkeypatch.setattr(settings, "PROGRESS_MAX_WRITE_ATTEMPTS", 20)


def run_concurrently(session_factory, calls):
    """Release every call at once, each on its own thread and session."""
    barrier = threading.Barrier(len(calls))

    def worker(call):
        db = session_factory()
        try:
            barrier.wait()
            return call(db)
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(worker, call) for call in calls]
        return [future.result() for future in futures]


def slide_view(enrollment_id, lesson_id, slide_index, seconds):
    def call(db):
        return lesson_progress_service.record_slide_view(db, enrollment_id, lesson_id, slide_index, seconds)
    return call


@pytest.mark.parametrize("repeats", [1, 2])
@pytest.mark.parametrize("seed", range(5))
def test_concurrent_views_of_every_slide_complete_the_lesson(session_factory, student, course_factory, enroll, seed, repeats):
    course = course_factory(slide_counts=(3,))
    enrollment = enroll(student, course)
    lesson_id = course.lessons[0].id

    events = [(0, 20), (1, 25), (2, 30)] * repeats
    random.Random(seed).shuffle(events)
    run_concurrently(session_factory, [slide_view(enrollment.id, lesson_id, i, s) for i, s in events])

    db = session_factory()
    try:
        progress = crud_lesson_progress.get_by_enrollment_and_lesson(db, enrollment.id, lesson_id)
        stored = crud_enrollment.get(db, id=enrollment.id)
        assert len(crud_lesson_progress.get_all_by_enrollment(db, enrollment.id)) == 1
        assert progress.total_slides_viewed == 3
        assert progress.time_spent_seconds == 75 * repeats
        assert progress.status == LessonProgressStatusEnum.COMPLETED
        assert stored.lessons_completed == 1
        assert stored.progress_percentage == 100
        assert stored.status == EnrollmentStatusEnum.COMPLETED
    finally:
        db.close()


@pytest.mark.parametrize("seed, thread_count", [(1, 4), (2, 6), (3, 8)])
def test_concurrent_views_keep_the_maximum(session_factory, student, course_factory, enroll, seed, thread_count):
    course = course_factory(slide_counts=(12,))
    enrollment = enroll(student, course)
    lesson_id = course.lessons[0].id

    rng = random.Random(seed)
    indices = [rng.randrange(0, 10) for _ in range(thread_count)]
    run_concurrently(session_factory, [slide_view(enrollment.id, lesson_id, i, 3) for i in indices])

    db = session_factory()
    try:
        progress = crud_lesson_progress.get_by_enrollment_and_lesson(db, enrollment.id, lesson_id)
        assert progress.total_slides_viewed == max(indices) + 1
        assert progress.time_spent_seconds == 3 * thread_count
        assert progress.status == LessonProgressStatusEnum.IN_PROGRESS
    finally:
        db.close()


def test_concurrent_completion_of_different_lessons(session_factory, student, course_factory, enroll):
    course = course_factory(slide_counts=(1, 1, 1, 1))
    enrollment = enroll(student, course)

    run_concurrently(session_factory, [slide_view(enrollment.id, lesson.id, 0, 5) for lesson in course.lessons])

    db = session_factory()
    try:
        stored = crud_enrollment.get(db, id=enrollment.id)
        assert stored.lessons_completed == 4
        assert stored.progress_percentage == 100
        assert stored.status == EnrollmentStatusEnum.COMPLETED
        assert stored.completed_at is not None
    finally:
        db.close()


def test_concurrent_first_access_creates_one_row(session_factory, student, course_factory, enroll):
    course = course_factory(slide_counts=(5,))
    enrollment = enroll(student, course)
    lesson_id = course.lessons[0].id

    def open_lesson(db):
        return lesson_progress_service.get_lesson_progress(db, enrollment.id, lesson_id).id

    ids = run_concurrently(session_factory, [open_lesson] * 5)

    assert len(set(ids)) == 1
