from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload
from typing import List
import logging

from lms_core.config import get_db, DEFAULT_PASSING_PERCENTAGE
from lms_core.models import (
    UserInDB, Course, Module, CourseContent, Enrollment, Quiz, QuizQuestion, QuizAttempt
)
from lms_core.auth.dependencies import get_current_user_dependency
from lms_core.utils.permissions import (
    require_instructor_or_admin, require_student, require_enrollment, can_manage_course
)
from lms_core.quizzes.schemas import (
    CHOICE_QUESTION_TYPES, QuizCreateSchema, QuizSchema, InstructorQuizSummarySchema,
    StudentQuizSchema, StudentQuestionSchema, StudentOptionSchema, StudentQuizListItemSchema,
    AttemptReviewSchema, QuizSubmissionSchema, AttemptResultSchema, QuizAttemptSchema,
    AttemptHistorySchema
)
from lms_core.quizzes.scoring import best_attempt, review_answers, effective_passing_percentage
from lms_core.quizzes.grading import option_text
from lms_core.progress.locking import find_linked_video, is_quiz_locked
from lms_core.services.attempt_service import QuizAttemptService
from lms_core.services.analytics_service import get_instructor_quizzes
from lms_core.services.enrollment_service import get_completed_keys, get_ordered_course_content

logger = logging.getLogger(__name__)

router = APIRouter()


def validate_quiz_definition(quiz_data: QuizCreateSchema):
    """Authoring rules: titled quiz, at least one question, sane choice options."""
    if not quiz_data.title.strip() or not quiz_data.questions:
        raise HTTPException(
            status_code=400,
            detail="Title, course, and at least one question are required"
        )

    for question in quiz_data.questions:
        if not question.question_text.strip():
            raise HTTPException(status_code=400, detail="Question text is required for all questions")

        if question.question_type in CHOICE_QUESTION_TYPES:
            if len(question.options) < 2:
                raise HTTPException(status_code=400, detail="Choice questions must have at least 2 options")
            if not any(option.is_correct for option in question.options):
                raise HTTPException(status_code=400, detail="At least one option must be marked as correct")
        elif not question.correct_answer.strip():
            raise HTTPException(status_code=400, detail="Fill-blank questions need a correct answer")


def _linked_video(quiz: Quiz, db: Session):
    # Same course-order resolution as the content listing
    return find_linked_video(quiz.id, get_ordered_course_content(quiz.course_id, db))


def _attempt_review(quiz: Quiz, attempt: QuizAttempt) -> AttemptReviewSchema:
    return AttemptReviewSchema(
        score=attempt.score,
        earned_points=attempt.earned_points,
        total_points=attempt.total_points,
        passed=attempt.passed,
        attempt_number=attempt.attempt_number,
        time_spent_seconds=attempt.time_spent_seconds or 0,
        results=review_answers(quiz, attempt.answers or [])
    )


# =============================================================================
# INSTRUCTOR
# =============================================================================

@router.post("/", response_model=QuizSchema, status_code=201)
async def create_quiz(
    quiz_data: QuizCreateSchema,
    current_user: UserInDB = Depends(require_instructor_or_admin()),
    db: Session = Depends(get_db)
):
    """Create a quiz with its questions"""
    course = db.query(Course).filter(Course.id == quiz_data.course_id).first()
    if not course or not can_manage_course(course, current_user):
        raise HTTPException(status_code=404, detail="Course not found or unauthorized")

    validate_quiz_definition(quiz_data)

    if quiz_data.module_id is not None:
        module = db.query(Module).filter(
            Module.id == quiz_data.module_id, Module.course_id == course.id
        ).first()
        if not module:
            raise HTTPException(status_code=404, detail="Module not found")

    if quiz_data.content_id is not None:
        content = db.query(CourseContent).filter(
            CourseContent.id == quiz_data.content_id, CourseContent.course_id == course.id
        ).first()
        if not content:
            raise HTTPException(status_code=404, detail="Content not found")

    quiz = Quiz(
        title=quiz_data.title.strip(),
        course_id=course.id,
        module_id=quiz_data.module_id,
        content_id=quiz_data.content_id,
        instructor_id=current_user.id,
        passing_percentage=quiz_data.passing_percentage,
        time_limit_minutes=quiz_data.time_limit_minutes,
        is_active=True
    )
    for index, question in enumerate(quiz_data.questions):
        quiz.questions.append(QuizQuestion(
            question_text=question.question_text,
            question_type=question.question_type,
            options=[option.model_dump() for option in question.options],
            correct_answer=question.correct_answer,
            points=question.points,
            explanation=question.explanation,
            order_index=index
        ))

    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info(f"Instructor {current_user.id} created quiz {quiz.id} in course {course.id}")
    return quiz


@router.get("/instructor", response_model=List[InstructorQuizSummarySchema])
async def get_my_quizzes(
    current_user: UserInDB = Depends(require_instructor_or_admin()),
    db: Session = Depends(get_db)
):
    """Quizzes authored by the current instructor, with attempt statistics"""
    return get_instructor_quizzes(current_user, db)


# =============================================================================
# STUDENT
# =============================================================================

@router.get("/student", response_model=List[StudentQuizListItemSchema])
async def get_student_quizzes(
    current_user: UserInDB = Depends(require_student()),
    db: Session = Depends(get_db)
):
    """All active quizzes of the student's courses with lock state and best score"""
    enrollments = db.query(Enrollment).filter(Enrollment.user_id == current_user.id).all()
    course_ids = [e.course_id for e in enrollments]
    if not course_ids:
        return []

    quizzes = db.query(Quiz).options(
        joinedload(Quiz.course), joinedload(Quiz.questions)
    ).filter(
        Quiz.course_id.in_(course_ids),
        Quiz.is_active == True
    ).order_by(Quiz.created_at.desc(), Quiz.id.desc()).all()

    completed_by_course = {cid: get_completed_keys(current_user.id, cid, db) for cid in course_ids}

    items = []
    for quiz in quizzes:
        attempts = QuizAttemptService.get_user_attempts(current_user.id, quiz.id, db)
        best = best_attempt(attempts)
        locked = is_quiz_locked(_linked_video(quiz, db), completed_by_course[quiz.course_id])

        if best:
            status = "completed"
        elif locked:
            status = "locked"
        else:
            status = "available"

        items.append(StudentQuizListItemSchema(
            id=quiz.id,
            title=quiz.title,
            course_id=quiz.course_id,
            course_title=quiz.course.title if quiz.course else "Unknown Course",
            question_count=len(quiz.questions),
            time_limit_minutes=quiz.time_limit_minutes,
            passing_percentage=effective_passing_percentage(quiz, DEFAULT_PASSING_PERCENTAGE),
            status=status,
            is_locked=locked,
            score=best.score if best else None,
            last_attempt_at=attempts[-1].created_at if attempts else None
        ))
    return items


@router.get("/{quiz_id}/take", response_model=StudentQuizSchema)
async def take_quiz(
    quiz_id: int,
    current_user: UserInDB = Depends(require_student()),
    db: Session = Depends(get_db)
):
    """Quiz for a student, without answer keys; blocked until the linked video is watched"""
    quiz = QuizAttemptService.get_quiz_or_404(quiz_id, db)
    require_enrollment(current_user.id, quiz.course_id, db)

    completed = get_completed_keys(current_user.id, quiz.course_id, db)
    if is_quiz_locked(_linked_video(quiz, db), completed):
        logger.warning(f"User {current_user.id} tried to open locked quiz {quiz.id}")
        raise HTTPException(
            status_code=403,
            detail={
                "is_locked": True,
                "message": "You must complete the video before taking this quiz."
            }
        )

    best = QuizAttemptService.get_best_attempt(current_user.id, quiz.id, db)

    return StudentQuizSchema(
        id=quiz.id,
        title=quiz.title,
        course_id=quiz.course_id,
        passing_percentage=effective_passing_percentage(quiz, DEFAULT_PASSING_PERCENTAGE),
        time_limit_minutes=quiz.time_limit_minutes,
        questions=[
            StudentQuestionSchema(
                id=question.id,
                question_text=question.question_text,
                question_type=question.question_type,
                options=[StudentOptionSchema(text=option_text(o)) for o in question.options or []],
                points=question.points
            )
            for question in quiz.questions
        ],
        best_attempt=_attempt_review(quiz, best) if best else None
    )


@router.post("/{quiz_id}/submit", response_model=AttemptResultSchema)
async def submit_quiz(
    quiz_id: int,
    submission: QuizSubmissionSchema,
    current_user: UserInDB = Depends(require_student()),
    db: Session = Depends(get_db)
):
    """Grade a submission; every submission creates a new attempt"""
    return QuizAttemptService.submit(current_user.id, quiz_id, submission, db)


@router.get("/{quiz_id}/attempts", response_model=AttemptHistorySchema)
async def get_my_attempts(
    quiz_id: int,
    current_user: UserInDB = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """The current user's attempts for a quiz, oldest first, with the best one"""
    QuizAttemptService.get_quiz_or_404(quiz_id, db)
    attempts = QuizAttemptService.get_user_attempts(current_user.id, quiz_id, db)
    best = best_attempt(attempts)
    return AttemptHistorySchema(
        attempts=[QuizAttemptSchema.model_validate(a) for a in attempts],
        best_attempt=QuizAttemptSchema.model_validate(best) if best else None
    )


# =============================================================================
# INSTRUCTOR (BY ID)
# =============================================================================

def _owned_quiz_or_404(quiz_id: int, current_user: UserInDB, db: Session) -> Quiz:
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
    if not quiz or (current_user.role != "admin" and quiz.instructor_id != current_user.id):
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


@router.get("/{quiz_id}", response_model=QuizSchema)
async def get_quiz(
    quiz_id: int,
    current_user: UserInDB = Depends(require_instructor_or_admin()),
    db: Session = Depends(get_db)
):
    return _owned_quiz_or_404(quiz_id, current_user, db)


@router.get("/{quiz_id}/results", response_model=List[QuizAttemptSchema])
async def get_quiz_results(
    quiz_id: int,
    current_user: UserInDB = Depends(require_instructor_or_admin()),
    db: Session = Depends(get_db)
):
    """All attempts on a quiz, newest first"""
    quiz = _owned_quiz_or_404(quiz_id, current_user, db)
    return db.query(QuizAttempt).filter(
        QuizAttempt.quiz_id == quiz.id
    ).order_by(QuizAttempt.created_at.desc(), QuizAttempt.id.desc()).all()


@router.delete("/{quiz_id}")
async def delete_quiz(
    quiz_id: int,
    current_user: UserInDB = Depends(require_instructor_or_admin()),
    db: Session = Depends(get_db)
):
    """Delete a quiz that no content item references"""
    quiz = _owned_quiz_or_404(quiz_id, current_user, db)

    linked = db.query(CourseContent).filter(CourseContent.quiz_id == quiz_id).count()
    if linked > 0:
        logger.warning(f"Refused to delete quiz {quiz_id}: linked to {linked} content item(s)")
        raise HTTPException(status_code=400, detail="Cannot delete quiz that is linked to course content")

    try:
        db.delete(quiz)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to delete quiz: {str(e)}")

    return {"detail": "Quiz deleted successfully"}
