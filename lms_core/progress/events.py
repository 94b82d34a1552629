from pydantic import BaseModel
from typing import List, Optional


class ContentCompleted(BaseModel):
    user_id: int
    course_id: int
    module_id: Optional[int] = None
    content_id: int
    content_type: str


class QuizPassed(BaseModel):
    """Emitted once a passing attempt is recorded; completes the quiz step and its linked content."""
    user_id: int
    course_id: int
    module_id: Optional[int] = None
    quiz_id: int
    attempt_id: int
    score: int
    linked_content_ids: List[int] = []
