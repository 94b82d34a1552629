from datetime import datetime
from typing import List, Optional
import logging

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from lms_core.config import DEFAULT_PASSING_PERCENTAGE
from lms_core.models import Quiz, QuizAttempt, CourseContent
from lms_core.progress.events import QuizPassed
from lms_core.quizzes.schemas import AttemptResultSchema, QuizSubmissionSchema
from lms_core.quizzes.scoring import score_attempt, review_answers, best_attempt
from lms_core.services.enrollment_service import apply_completion_event, log_activity
from lms_core.utils.permissions import get_enrollment

logger = logging.getLogger(__name__)


class QuizAttemptService:
    @staticmethod
    def get_quiz_or_404(quiz_id: int, db: Session) -> Quiz:
        quiz = db.query(Quiz).options(joinedload(Quiz.questions)).filter(Quiz.id == quiz_id).first()
        if not quiz:
            raise HTTPException(status_code=404, detail="Quiz not found")
        return quiz

    @staticmethod
    def linked_content_ids(quiz: Quiz, db: Session) -> List[int]:
        """Content items completed by passing this quiz."""
        ids = {
            row[0] for row in db.query(CourseContent.id).filter(
                CourseContent.quiz_id == quiz.id,
                CourseContent.course_id == quiz.course_id
            ).all()
        }
        if quiz.content_id:
            ids.add(quiz.content_id)
        return sorted(ids)

    @staticmethod
    def next_attempt_number(user_id: int, quiz_id: int, db: Session) -> int:
        # Best-effort ordering aid: concurrent submissions may share a number
        previous = db.query(func.count(QuizAttempt.id)).filter(
            QuizAttempt.user_id == user_id,
            QuizAttempt.quiz_id == quiz_id
        ).scalar() or 0
        return previous + 1

    @staticmethod
    def submit(user_id: int, quiz_id: int, submission: QuizSubmissionSchema, db: Session) -> AttemptResultSchema:
        """
        Grade and store a new attempt. A passing attempt also completes the
        quiz step and its linked content, in the same transaction.
        """
        quiz = QuizAttemptService.get_quiz_or_404(quiz_id, db)
        scored = score_attempt(quiz, submission.answers, DEFAULT_PASSING_PERCENTAGE)
        answers = [answer.model_dump() for answer in scored.answers]

        try:
            attempt = QuizAttempt(
                user_id=user_id,
                quiz_id=quiz.id,
                course_id=quiz.course_id,
                answers=answers,
                score=scored.score,
                total_points=scored.total_points,
                earned_points=scored.earned_points,
                passed=scored.passed,
                attempt_number=QuizAttemptService.next_attempt_number(user_id, quiz.id, db),
                time_spent_seconds=submission.time_spent_seconds,
                created_at=datetime.utcnow()
            )
            db.add(attempt)
            db.flush()

            log_activity(
                db, user_id, "quiz_submitted",
                course_id=quiz.course_id, module_id=quiz.module_id, quiz_id=quiz.id,
                details={"score": scored.score, "passed": scored.passed}
            )

            if scored.passed:
                enrollment = get_enrollment(user_id, quiz.course_id, db)
                if enrollment:
                    event = QuizPassed(
                        user_id=user_id,
                        course_id=quiz.course_id,
                        module_id=quiz.module_id,
                        quiz_id=quiz.id,
                        attempt_id=attempt.id,
                        score=scored.score,
                        linked_content_ids=QuizAttemptService.linked_content_ids(quiz, db)
                    )
                    apply_completion_event(event, enrollment, db)
                else:
                    logger.warning(
                        f"User {user_id} passed quiz {quiz.id} without an enrollment in course {quiz.course_id}"
                    )

            db.commit()
            db.refresh(attempt)
        except Exception:
            db.rollback()
            logger.exception(f"Failed to save attempt for quiz {quiz_id} by user {user_id}")
            raise HTTPException(status_code=500, detail="Failed to save quiz attempt")

        logger.info(
            f"User {user_id} attempt #{attempt.attempt_number} on quiz {quiz.id}: "
            f"{scored.score}% ({'passed' if scored.passed else 'failed'})"
        )

        return AttemptResultSchema(
            attempt_id=attempt.id,
            score=attempt.score,
            earned_points=attempt.earned_points,
            total_points=attempt.total_points,
            passed=attempt.passed,
            attempt_number=attempt.attempt_number,
            results=review_answers(quiz, answers)
        )

    @staticmethod
    def get_user_attempts(user_id: int, quiz_id: int, db: Session) -> List[QuizAttempt]:
        return db.query(QuizAttempt).filter(
            QuizAttempt.user_id == user_id,
            QuizAttempt.quiz_id == quiz_id
        ).order_by(QuizAttempt.attempt_number, QuizAttempt.id).all()

    @staticmethod
    def get_best_attempt(user_id: int, quiz_id: int, db: Session) -> Optional[QuizAttempt]:
        return best_attempt(QuizAttemptService.get_user_attempts(user_id, quiz_id, db))
