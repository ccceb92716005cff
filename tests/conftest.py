import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import uuid
import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.constants import CourseStatusEnum, LessonStatusEnum, RoleEnum
from app.core.database import Base, build_engine, get_db
from app.crud.course import course as crud_course
from app.crud.lesson import lesson as crud_lesson
from app.crud.user import user as crud_user
from app.services.enrollment import enrollment_service
from tests.helpers.auth import auth_headers
import app.models  # noqa: F401
import main


@pytest.fixture(scope="function")
def database_engine(tmp_path):
    test_db_url = settings.TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'test.db'}"
    engine = build_engine(test_db_url)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture(scope="function")
def session_factory(database_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=database_engine)

@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture(scope="function")
def client(db_session):
    main.app.dependency_overrides[get_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture
def user_factory(db_session):
    def _user_factory(role: RoleEnum = RoleEnum.STUDENT, email: str = None, is_active: bool = True):
        user_data = {
            "full_name": f"Test {role.value}",
            "email": email or f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
            "role": role,
            "is_active": is_active
        }
        return crud_user.create(db_session, obj_in=user_data)
    return _user_factory

@pytest.fixture
def student(user_factory):
    return user_factory(RoleEnum.STUDENT)

@pytest.fixture
def teacher(user_factory):
    return user_factory(RoleEnum.TEACHER)

@pytest.fixture
def course_factory(db_session, user_factory):
    """Create a course with one published lesson per entry in ``slide_counts``."""
    def _course_factory(
        slide_counts=(3,),
        estimated_minutes=10,
        status: CourseStatusEnum = CourseStatusEnum.PUBLISHED,
        teacher=None,
    ):
        owner = teacher or user_factory(RoleEnum.TEACHER)
        course = crud_course.create(db_session, obj_in={
            "title": f"Course {uuid.uuid4().hex[:6]}",
            "status": status,
            "teacher_id": owner.id
        })
        for order, slide_count in enumerate(slide_counts):
            crud_lesson.create(db_session, obj_in={
                "title": f"Lesson {order + 1}",
                "course_id": course.id,
                "status": LessonStatusEnum.PUBLISHED,
                "lesson_order": order,
                "slide_count": slide_count,
                "estimated_minutes": estimated_minutes
            })
        db_session.refresh(course)
        return course
    return _course_factory

@pytest.fixture
def enroll(db_session):
    def _enroll(user, course):
        return enrollment_service.enroll(db_session, user_id=user.id, course_id=course.id)
    return _enroll

@pytest.fixture
def headers_for():
    return auth_headers
