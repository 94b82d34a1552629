"""
Question grading.

Every supported question type is graded all-or-nothing. Responses that do not
fit the question (wrong response type, out-of-range option index, empty text,
no response at all) grade as incorrect instead of raising, so a partial or
abandoned attempt can always be scored.
"""

from pydantic import BaseModel
from typing import Any, Optional, Set

from lms_core.quizzes.schemas import (
    SingleChoiceResponse, MultipleChoiceResponse, FillBlankResponse
)


class GradeResult(BaseModel):
    is_correct: bool
    points_earned: float


def question_points(question) -> float:
    points = getattr(question, "points", None)
    return points if points is not None else 1


def option_is_correct(option: Any) -> bool:
    if isinstance(option, dict):
        return bool(option.get("is_correct"))
    return bool(getattr(option, "is_correct", False))


def option_text(option: Any) -> str:
    if isinstance(option, dict):
        return option.get("text", "")
    return getattr(option, "text", "")


def correct_option_indices(question) -> Set[int]:
    return {i for i, option in enumerate(question.options or []) if option_is_correct(option)}


def normalize_text(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def check_single_choice(question, response: SingleChoiceResponse) -> bool:
    options = question.options or []
    selected = response.selected
    if selected is None or not 0 <= selected < len(options):
        return False
    return option_is_correct(options[selected])


def check_multiple_choice(question, response: MultipleChoiceResponse) -> bool:
    # Exact match of size and members, no partial credit
    selected = response.selected
    if not selected or len(selected) != len(set(selected)):
        return False
    return set(selected) == correct_option_indices(question)


def check_fill_blank(question, response: FillBlankResponse) -> bool:
    submitted = normalize_text(response.text)
    if not submitted:
        return False
    return submitted == normalize_text(question.correct_answer)


# question type -> (expected response model, checker)
CHECKERS = {
    "mcq-single": (SingleChoiceResponse, check_single_choice),
    "true-false": (SingleChoiceResponse, check_single_choice),
    "mcq-multiple": (MultipleChoiceResponse, check_multiple_choice),
    "fill-blank": (FillBlankResponse, check_fill_blank),
}


def grade_question(question, response) -> GradeResult:
    """
    Grade one response against one question.

    ``question`` needs ``question_type``, ``options`` (list of
    ``{"text", "is_correct"}``), ``correct_answer`` and ``points``.
    ``response`` is a tagged response model or ``None`` when unanswered.
    """
    is_correct = False

    entry = CHECKERS.get(question.question_type)
    if entry is not None and response is not None:
        response_model, checker = entry
        if isinstance(response, response_model) and response.type == question.question_type:
            is_correct = checker(question, response)

    return GradeResult(
        is_correct=is_correct,
        points_earned=question_points(question) if is_correct else 0,
    )
