from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Union, Literal, Annotated


CHOICE_QUESTION_TYPES = ("mcq-single", "mcq-multiple", "true-false")

QuestionType = Literal["mcq-single", "mcq-multiple", "true-false", "fill-blank"]


# =============================================================================
# AUTHORING
# =============================================================================

class QuestionOptionSchema(BaseModel):
    text: str
    is_correct: bool = False


class QuizQuestionCreateSchema(BaseModel):
    question_text: str = ""
    question_type: QuestionType
    options: List[QuestionOptionSchema] = []
    correct_answer: str = ""
    points: float = Field(1, gt=0)
    explanation: Optional[str] = None


class QuizCreateSchema(BaseModel):
    title: str = ""
    course_id: int
    module_id: Optional[int] = None
    content_id: Optional[int] = None
    questions: List[QuizQuestionCreateSchema] = []
    passing_percentage: int = Field(60, ge=0, le=100)
    time_limit_minutes: Optional[int] = Field(None, gt=0)


class QuizQuestionSchema(BaseModel):
    id: int
    question_text: str
    question_type: str
    options: List[QuestionOptionSchema] = []
    correct_answer: str = ""
    points: float
    explanation: Optional[str] = None
    order_index: int

    class Config:
        from_attributes = True


class QuizSchema(BaseModel):
    id: int
    title: str
    course_id: int
    module_id: Optional[int] = None
    content_id: Optional[int] = None
    instructor_id: int
    passing_percentage: Optional[int] = None
    time_limit_minutes: Optional[int] = None
    is_active: bool
    created_at: datetime
    questions: List[QuizQuestionSchema] = []

    class Config:
        from_attributes = True


class InstructorQuizSummarySchema(BaseModel):
    id: int
    title: str
    course_id: int
    question_count: int
    total_attempts: int
    passed_attempts: int
    pass_rate: float
    average_score: float


# =============================================================================
# STUDENT VIEW
# =============================================================================

class StudentOptionSchema(BaseModel):
    text: str


class StudentQuestionSchema(BaseModel):
    """Question as shown to a student: no correctness flags, no canonical answer."""
    id: int
    question_text: str
    question_type: str
    options: List[StudentOptionSchema] = []
    points: float


class QuestionReviewSchema(BaseModel):
    question_id: int
    question_text: str
    user_answer: str = ""
    correct_answer: str = ""
    is_correct: bool


class AttemptReviewSchema(BaseModel):
    score: int
    earned_points: float
    total_points: float
    passed: bool
    attempt_number: int
    time_spent_seconds: int = 0
    results: List[QuestionReviewSchema] = []


class StudentQuizSchema(BaseModel):
    id: int
    title: str
    course_id: int
    passing_percentage: int
    time_limit_minutes: Optional[int] = None
    questions: List[StudentQuestionSchema] = []
    best_attempt: Optional[AttemptReviewSchema] = None


class StudentQuizListItemSchema(BaseModel):
    id: int
    title: str
    course_id: int
    course_title: str
    question_count: int
    time_limit_minutes: Optional[int] = None
    passing_percentage: int
    status: str  # completed, locked, available
    is_locked: bool
    score: Optional[int] = None
    last_attempt_at: Optional[datetime] = None  # newest attempt, not the best one


# =============================================================================
# SUBMISSION
# =============================================================================

class SingleChoiceResponse(BaseModel):
    type: Literal["mcq-single", "true-false"]
    question_id: int
    selected: Optional[int] = None


class MultipleChoiceResponse(BaseModel):
    type: Literal["mcq-multiple"]
    question_id: int
    selected: List[int] = []


class FillBlankResponse(BaseModel):
    type: Literal["fill-blank"]
    question_id: int
    text: Optional[str] = None


QuestionResponse = Annotated[
    Union[SingleChoiceResponse, MultipleChoiceResponse, FillBlankResponse],
    Field(discriminator="type"),
]


class QuizSubmissionSchema(BaseModel):
    answers: List[QuestionResponse]
    time_spent_seconds: int = Field(0, ge=0)

    @field_validator("answers")
    @classmethod
    def one_response_per_question(cls, v):
        seen = set()
        for response in v:
            if response.question_id in seen:
                raise ValueError(f"Duplicate response for question {response.question_id}")
            seen.add(response.question_id)
        return v


class AnswerRecordSchema(BaseModel):
    question_id: int
    selected_option_indices: List[int] = []
    text_answer: str = ""
    is_correct: bool
    points_earned: float


class QuizAttemptSchema(BaseModel):
    id: int
    user_id: int
    quiz_id: int
    course_id: int
    answers: List[AnswerRecordSchema] = []
    score: int
    total_points: float
    earned_points: float
    passed: bool
    attempt_number: int
    time_spent_seconds: Optional[int] = 0
    created_at: datetime

    class Config:
        from_attributes = True


class AttemptResultSchema(BaseModel):
    attempt_id: int
    score: int
    earned_points: float
    total_points: float
    passed: bool
    attempt_number: int
    results: List[QuestionReviewSchema] = []


class AttemptHistorySchema(BaseModel):
    attempts: List[QuizAttemptSchema] = []
    best_attempt: Optional[QuizAttemptSchema] = None
