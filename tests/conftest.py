import os

os.environ["POSTGRES_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from lms_core.config import SessionLocal, reset_db
from lms_core.models import (
    UserInDB, Course, Module, CourseContent, Enrollment, Quiz, QuizQuestion
)
from lms_core.utils.auth_utils import create_access_token


@pytest.fixture(autouse=True)
def fresh_tables():
    reset_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from lms_core.app import app
    with TestClient(app) as c:
        yield c


def auth_headers(user: UserInDB) -> dict:
    token = create_access_token({"sub": user.email, "user_id": user.id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def make_user(db, email, role="student", name=None):
    user = UserInDB(email=email, name=name or email.split("@")[0].title(), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_quiz(db, course, instructor, questions, passing_percentage=60, module=None):
    quiz = Quiz(
        title="Checkpoint",
        course_id=course.id,
        module_id=module.id if module else None,
        instructor_id=instructor.id,
        passing_percentage=passing_percentage,
        is_active=True
    )
    for index, question in enumerate(questions):
        quiz.questions.append(QuizQuestion(order_index=index, **question))
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    return quiz


def add_content(db, course, module, title, content_type="video", order_index=0, quiz=None):
    item = CourseContent(
        course_id=course.id,
        module_id=module.id,
        title=title,
        content_type=content_type,
        video_url="https://videos.example.com/v.mp4" if content_type == "video" else None,
        order_index=order_index,
        quiz_id=quiz.id if quiz else None
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


TWO_QUESTIONS = [
    {
        "question_text": "2 + 2 = ?",
        "question_type": "mcq-single",
        "options": [{"text": "3", "is_correct": False}, {"text": "4", "is_correct": True}],
        "points": 1,
    },
    {
        "question_text": "Capital of France",
        "question_type": "fill-blank",
        "options": [],
        "correct_answer": "Paris",
        "points": 1,
    },
]


@pytest.fixture
def course_setup(db):
    """
    One course, one module with three items: a text lesson, a video with a
    linked quiz, and a closing text lesson. An enrolled student and the
    owning instructor.
    """
    instructor = make_user(db, "teacher@example.com", role="instructor")
    student = make_user(db, "student@example.com")

    course = Course(title="Algebra", instructor_id=instructor.id)
    db.add(course)
    db.commit()
    module = Module(course_id=course.id, title="Basics", order_index=1)
    db.add(module)
    db.commit()

    quiz = make_quiz(db, course, instructor, TWO_QUESTIONS, module=module)
    intro = add_content(db, course, module, "Intro", content_type="text", order_index=1)
    video = add_content(db, course, module, "Lecture", content_type="video", order_index=2, quiz=quiz)
    outro = add_content(db, course, module, "Summary", content_type="text", order_index=3)

    enrollment = Enrollment(user_id=student.id, course_id=course.id, progress_percentage=0, status="active")
    db.add(enrollment)
    db.commit()

    return {
        "instructor": instructor,
        "student": student,
        "course": course,
        "module": module,
        "quiz": quiz,
        "intro": intro,
        "video": video,
        "outro": outro,
    }
