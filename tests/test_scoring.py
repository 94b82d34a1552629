from types import SimpleNamespace

from lms_core.quizzes.schemas import SingleChoiceResponse, FillBlankResponse, MultipleChoiceResponse
from lms_core.quizzes.scoring import (
    score_attempt, best_attempt, review_answers, effective_passing_percentage
)
from lms_core.utils.rounding import percent_half_up, round_half_up


def make_quiz(questions, passing_percentage=60):
    return SimpleNamespace(id=1, passing_percentage=passing_percentage, questions=questions)


Q1 = SimpleNamespace(
    id=1, question_type="mcq-single", question_text="2 + 2 = ?", points=1, correct_answer="",
    options=[{"text": "3", "is_correct": False}, {"text": "4", "is_correct": True}],
)
Q2 = SimpleNamespace(
    id=2, question_type="fill-blank", question_text="Capital of France", points=1,
    correct_answer="Paris", options=[],
)


def test_half_correct_attempt_fails_at_sixty_percent():
    scored = score_attempt(make_quiz([Q1, Q2]), [
        SingleChoiceResponse(type="mcq-single", question_id=1, selected=1),
    ])
    assert scored.earned_points == 1
    assert scored.total_points == 2
    assert scored.score == 50
    assert scored.passed is False
    assert [a.is_correct for a in scored.answers] == [True, False]


def test_fully_correct_attempt_passes():
    scored = score_attempt(make_quiz([Q1, Q2]), [
        SingleChoiceResponse(type="mcq-single", question_id=1, selected=1),
        FillBlankResponse(type="fill-blank", question_id=2, text="paris"),
    ])
    assert scored.score == 100
    assert scored.passed is True


def test_score_rounds_half_up():
    questions = [
        SimpleNamespace(id=i, question_type="fill-blank", question_text=str(i), points=1,
                        correct_answer="yes", options=[])
        for i in range(1, 9)
    ]
    # 1 of 8 correct is 12.5%
    scored = score_attempt(make_quiz(questions), [
        FillBlankResponse(type="fill-blank", question_id=1, text="yes"),
    ])
    assert scored.score == 13


def test_quiz_without_questions_scores_zero():
    scored = score_attempt(make_quiz([]), [])
    assert scored.total_points == 0
    assert scored.score == 0
    assert scored.passed is False


def test_zero_threshold_passes_anything():
    scored = score_attempt(make_quiz([Q1], passing_percentage=0), [])
    assert scored.score == 0
    assert scored.passed is True


def test_missing_threshold_uses_default():
    quiz = make_quiz([Q1], passing_percentage=None)
    assert effective_passing_percentage(quiz, 75) == 75
    scored = score_attempt(quiz, [SingleChoiceResponse(type="mcq-single", question_id=1, selected=1)], 75)
    assert scored.passed is True


def test_responses_for_unknown_questions_are_ignored():
    scored = score_attempt(make_quiz([Q1]), [
        SingleChoiceResponse(type="mcq-single", question_id=99, selected=1),
    ])
    assert scored.earned_points == 0
    assert len(scored.answers) == 1


def test_weighted_points():
    heavy = SimpleNamespace(
        id=3, question_type="mcq-multiple", question_text="Pick primes", points=3, correct_answer="",
        options=[{"text": "2", "is_correct": True}, {"text": "4", "is_correct": False},
                 {"text": "5", "is_correct": True}],
    )
    scored = score_attempt(make_quiz([Q1, heavy]), [
        MultipleChoiceResponse(type="mcq-multiple", question_id=3, selected=[0, 2]),
    ])
    assert scored.earned_points == 3
    assert scored.total_points == 4
    assert scored.score == 75
    assert 0 <= scored.score <= 100


def test_best_attempt_prefers_highest_then_earliest():
    attempts = [
        SimpleNamespace(id=3, attempt_number=3, score=80),
        SimpleNamespace(id=1, attempt_number=1, score=40),
        SimpleNamespace(id=2, attempt_number=2, score=80),
    ]
    assert best_attempt(attempts).id == 2
    assert best_attempt([]) is None


def test_review_answers_display_text():
    answers = [
        {"question_id": 1, "selected_option_indices": [0], "text_answer": "", "is_correct": False},
        {"question_id": 2, "selected_option_indices": [], "text_answer": "Lyon", "is_correct": False},
        {"question_id": 42, "selected_option_indices": [], "text_answer": "", "is_correct": True},
    ]
    review = review_answers(make_quiz([Q1, Q2]), answers)

    assert review[0].user_answer == "3"
    assert review[0].correct_answer == "4"
    assert review[1].user_answer == "Lyon"
    assert review[1].correct_answer == "Paris"
    assert review[2].question_text == "Deleted Question"


def test_rounding_helpers():
    assert percent_half_up(1, 8) == 13
    assert percent_half_up(1, 3) == 33
    assert percent_half_up(2, 3) == 67
    assert percent_half_up(5, 0) == 0
    assert round_half_up(2.5) == 3
