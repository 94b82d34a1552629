"""
Attempt scoring: runs every question of a quiz through the grader and turns
the points into a 0-100 score and a pass/fail verdict.
"""

from pydantic import BaseModel
from typing import Dict, Iterable, List, Optional

from lms_core.quizzes.grading import (
    grade_question, question_points, option_text, correct_option_indices
)
from lms_core.quizzes.schemas import (
    SingleChoiceResponse, MultipleChoiceResponse, FillBlankResponse, QuestionReviewSchema
)
from lms_core.utils.rounding import percent_half_up

DEFAULT_PASSING_PERCENTAGE = 60


class ScoredAnswer(BaseModel):
    question_id: int
    selected_option_indices: List[int] = []
    text_answer: str = ""
    is_correct: bool
    points_earned: float


class ScoredAttempt(BaseModel):
    answers: List[ScoredAnswer]
    earned_points: float
    total_points: float
    score: int
    passed: bool


def effective_passing_percentage(quiz, default: int = DEFAULT_PASSING_PERCENTAGE) -> int:
    if quiz.passing_percentage is None:
        return default
    return quiz.passing_percentage


def _recorded_selection(response) -> List[int]:
    if isinstance(response, SingleChoiceResponse):
        return [response.selected] if response.selected is not None else []
    if isinstance(response, MultipleChoiceResponse):
        return list(response.selected)
    return []


def _recorded_text(response) -> str:
    if isinstance(response, FillBlankResponse):
        return response.text or ""
    return ""


def score_attempt(
    quiz,
    responses: Iterable,
    default_passing_percentage: int = DEFAULT_PASSING_PERCENTAGE
) -> ScoredAttempt:
    """
    Grade all questions of ``quiz`` against ``responses``.

    Unanswered questions still count toward ``total_points``. Responses for
    question ids the quiz does not contain are ignored.
    """
    by_question: Dict[int, object] = {r.question_id: r for r in responses}

    answers = []
    earned_points = 0
    total_points = 0

    for question in quiz.questions:
        points = question_points(question)
        total_points += points

        response = by_question.get(question.id)
        result = grade_question(question, response)
        earned_points += result.points_earned

        answers.append(ScoredAnswer(
            question_id=question.id,
            selected_option_indices=_recorded_selection(response),
            text_answer=_recorded_text(response),
            is_correct=result.is_correct,
            points_earned=result.points_earned,
        ))

    score = percent_half_up(earned_points, total_points) if total_points > 0 else 0
    passing_percentage = effective_passing_percentage(quiz, default_passing_percentage)

    return ScoredAttempt(
        answers=answers,
        earned_points=earned_points,
        total_points=total_points,
        score=score,
        passed=score >= passing_percentage,
    )


def best_attempt(attempts: Iterable):
    """Highest score wins; ties go to the earliest attempt."""
    best = None
    for attempt in sorted(attempts, key=lambda a: (a.attempt_number, a.id or 0)):
        if best is None or attempt.score > best.score:
            best = attempt
    return best


# =============================================================================
# RESULT DISPLAY
# =============================================================================

def correct_answer_display(question) -> str:
    if question.question_type == "fill-blank":
        return question.correct_answer or ""
    options = question.options or []
    return ", ".join(option_text(options[i]) for i in sorted(correct_option_indices(question)))


def user_answer_display(question, answer: dict) -> str:
    if answer.get("text_answer"):
        return answer["text_answer"]
    options = question.options or []
    texts = [
        option_text(options[i])
        for i in answer.get("selected_option_indices") or []
        if 0 <= i < len(options)
    ]
    return ", ".join(texts)


def review_answers(quiz, answers: List[dict]) -> List[QuestionReviewSchema]:
    """Pair stored answers with their questions for the result screen."""
    questions = {q.id: q for q in quiz.questions}
    review = []
    for answer in answers:
        question: Optional[object] = questions.get(answer["question_id"])
        if question is None:
            review.append(QuestionReviewSchema(
                question_id=answer["question_id"],
                question_text="Deleted Question",
                is_correct=answer.get("is_correct", False),
            ))
            continue
        review.append(QuestionReviewSchema(
            question_id=question.id,
            question_text=question.question_text,
            user_answer=user_answer_display(question, answer),
            correct_answer=correct_answer_display(question),
            is_correct=answer.get("is_correct", False),
        ))
    return review
