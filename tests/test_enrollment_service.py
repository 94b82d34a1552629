from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from lms_core.models import ActivityLog, Enrollment, Progress
from lms_core.progress.events import QuizPassed
from lms_core.quizzes.schemas import QuizSubmissionSchema
from lms_core.services import enrollment_service
from lms_core.services.analytics_service import classify_student
from lms_core.services.attempt_service import QuizAttemptService

from conftest import make_user


def complete(db, setup, key):
    item = setup[key]
    return enrollment_service.mark_content_complete(
        setup["student"].id, setup["course"].id, setup["module"].id, item.id, db
    )


def enrollment_of(db, setup):
    db.expire_all()
    return db.query(Enrollment).filter(
        Enrollment.user_id == setup["student"].id,
        Enrollment.course_id == setup["course"].id
    ).one()


def passing_submission(quiz):
    first, second = quiz.questions
    return QuizSubmissionSchema(answers=[
        {"type": "mcq-single", "question_id": first.id, "selected": 1},
        {"type": "fill-blank", "question_id": second.id, "text": "Paris"},
    ])


def test_content_completion_updates_percentage(db, course_setup):
    progress = complete(db, course_setup, "intro")

    assert progress.step_key == f"content:{course_setup['intro'].id}"
    enrollment = enrollment_of(db, course_setup)
    assert enrollment.progress_percentage == 25
    assert enrollment.status == "active"


def test_completing_the_same_content_twice_records_one_step(db, course_setup):
    complete(db, course_setup, "intro")
    complete(db, course_setup, "intro")

    assert db.query(Progress).count() == 1
    assert enrollment_of(db, course_setup).progress_percentage == 25


def test_percentage_never_decreases_on_recompute(db, course_setup):
    enrollment = enrollment_of(db, course_setup)
    enrollment.progress_percentage = 90
    db.commit()

    complete(db, course_setup, "intro")

    enrollment = enrollment_of(db, course_setup)
    assert enrollment.progress_percentage == 90
    assert enrollment.status == "active"


def test_quiz_content_cannot_be_marked_complete_directly(db, course_setup):
    from conftest import add_content
    placeholder = add_content(
        db, course_setup["course"], course_setup["module"], "Quiz", content_type="quiz",
        order_index=4, quiz=course_setup["quiz"]
    )

    with pytest.raises(HTTPException) as exc:
        enrollment_service.mark_content_complete(
            course_setup["student"].id, course_setup["course"].id,
            course_setup["module"].id, placeholder.id, db
        )
    assert exc.value.status_code == 400


def test_mark_complete_requires_enrollment(db, course_setup):
    outsider = make_user(db, "outsider@example.com")

    with pytest.raises(HTTPException) as exc:
        enrollment_service.mark_content_complete(
            outsider.id, course_setup["course"].id, course_setup["module"].id,
            course_setup["intro"].id, db
        )
    assert exc.value.status_code == 403


def test_unknown_content_is_not_found(db, course_setup):
    with pytest.raises(HTTPException) as exc:
        enrollment_service.mark_content_complete(
            course_setup["student"].id, course_setup["course"].id, course_setup["module"].id, 999, db
        )
    assert exc.value.status_code == 404


def test_passing_quiz_completes_quiz_and_linked_video(db, course_setup):
    result = QuizAttemptService.submit(
        course_setup["student"].id, course_setup["quiz"].id, passing_submission(course_setup["quiz"]), db
    )

    assert result.passed
    keys = enrollment_service.get_completed_keys(course_setup["student"].id, course_setup["course"].id, db)
    assert keys == {f"quiz:{course_setup['quiz'].id}", f"content:{course_setup['video'].id}"}
    assert enrollment_of(db, course_setup).progress_percentage == 50


def test_failed_attempt_leaves_progress_alone(db, course_setup):
    submission = QuizSubmissionSchema(answers=[])
    result = QuizAttemptService.submit(course_setup["student"].id, course_setup["quiz"].id, submission, db)

    assert result.passed is False
    assert result.score == 0
    assert db.query(Progress).count() == 0


def test_pass_without_enrollment_records_only_the_attempt(db, course_setup):
    outsider = make_user(db, "outsider@example.com")
    result = QuizAttemptService.submit(
        outsider.id, course_setup["quiz"].id, passing_submission(course_setup["quiz"]), db
    )

    assert result.passed
    assert result.attempt_number == 1
    assert db.query(Progress).count() == 0


def test_submit_unknown_quiz(db, course_setup):
    with pytest.raises(HTTPException) as exc:
        QuizAttemptService.submit(course_setup["student"].id, 404, QuizSubmissionSchema(answers=[]), db)
    assert exc.value.status_code == 404


def test_full_course_completion_transitions_once(db, course_setup):
    complete(db, course_setup, "intro")
    complete(db, course_setup, "video")
    QuizAttemptService.submit(
        course_setup["student"].id, course_setup["quiz"].id, passing_submission(course_setup["quiz"]), db
    )
    complete(db, course_setup, "outro")

    enrollment = enrollment_of(db, course_setup)
    assert enrollment.progress_percentage == 100
    assert enrollment.status == "completed"
    assert enrollment.completed_at is not None

    # A repeated event on a completed course does not log a second completion
    complete(db, course_setup, "outro")
    completions = db.query(ActivityLog).filter(ActivityLog.activity_type == "course_completed").count()
    assert completions == 1


def test_reset_then_force_complete(db, course_setup):
    student_id, course_id = course_setup["student"].id, course_setup["course"].id
    complete(db, course_setup, "intro")

    enrollment = enrollment_service.reset_progress(student_id, course_id, db)
    assert enrollment.progress_percentage == 0
    assert enrollment.status == "active"
    assert enrollment.completed_at is None
    assert enrollment_service.get_completed_keys(student_id, course_id, db) == set()

    enrollment = enrollment_service.force_complete_course(student_id, course_id, db)
    assert enrollment.progress_percentage == 100
    assert enrollment.status == "completed"

    enrollment = enrollment_service.reset_progress(student_id, course_id, db)
    assert enrollment.status == "active"


def test_enrollment_progress_without_enrollment_is_not_found(db, course_setup):
    outsider = make_user(db, "outsider@example.com")
    for operation in (
        enrollment_service.get_enrollment_progress,
        enrollment_service.reset_progress,
        enrollment_service.force_complete_course,
    ):
        with pytest.raises(HTTPException) as exc:
            operation(outsider.id, course_setup["course"].id, db)
        assert exc.value.status_code == 404


def test_course_without_content_keeps_zero(db, course_setup):
    from lms_core.models import Course
    empty = Course(title="Empty", instructor_id=course_setup["instructor"].id)
    db.add(empty)
    db.commit()
    enrollment = enrollment_service.enroll(course_setup["student"].id, empty.id, db)

    result = enrollment_service.recompute_enrollment(enrollment, db)

    assert result.total_steps == 0
    assert enrollment.progress_percentage == 0
    assert enrollment.status == "active"


def test_enroll_is_idempotent(db, course_setup):
    newcomer = make_user(db, "new@example.com")
    first = enrollment_service.enroll(newcomer.id, course_setup["course"].id, db)
    second = enrollment_service.enroll(newcomer.id, course_setup["course"].id, db)
    assert first.id == second.id


def test_quiz_passed_event_ignores_content_from_other_courses(db, course_setup):
    enrollment = enrollment_of(db, course_setup)
    event = QuizPassed(
        user_id=course_setup["student"].id,
        course_id=course_setup["course"].id,
        quiz_id=course_setup["quiz"].id,
        attempt_id=1,
        score=100,
        linked_content_ids=[course_setup["video"].id, 12345]
    )
    recorded = enrollment_service.apply_completion_event(event, enrollment, db)
    db.commit()

    assert len(recorded) == 2


def test_classify_student():
    now = datetime(2024, 5, 20, 12, 0)
    assert classify_student(now - timedelta(days=2), 10, now=now) == "active"
    assert classify_student(now - timedelta(days=10), 10, now=now) == "at-risk"
    assert classify_student(None, 29, now=now) == "at-risk"
    assert classify_student(now - timedelta(days=10), 30, now=now) == "inactive"


def test_step_committed_by_a_concurrent_request_is_reused(db, course_setup):
    from lms_core.config import SessionLocal

    student_id = course_setup["student"].id
    course_id = course_setup["course"].id
    quiz_id = course_setup["quiz"].id
    step_key = f"quiz:{quiz_id}"

    def quiz_step():
        return Progress(user_id=student_id, course_id=course_id, quiz_id=quiz_id,
                        step_key=step_key, content_type="quiz", status="completed")

    other = SessionLocal()
    other.add(quiz_step())
    other.commit()
    other.close()

    enrollment_service.log_activity(db, student_id, "quiz_submitted", course_id=course_id, quiz_id=quiz_id)
    db.flush()
    progress = enrollment_service._insert_step(db, quiz_step())
    db.commit()

    assert progress.step_key == step_key
    assert db.query(Progress).count() == 1
    assert db.query(ActivityLog).filter(ActivityLog.activity_type == "quiz_submitted").count() == 1
