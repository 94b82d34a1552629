from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class ContentCompleteSchema(BaseModel):
    course_id: int
    module_id: int
    content_id: int


class ProgressSchema(BaseModel):
    id: int
    user_id: int
    course_id: int
    module_id: Optional[int] = None
    content_id: Optional[int] = None
    quiz_id: Optional[int] = None
    step_key: str
    content_type: str
    status: str
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EnrollmentProgressSchema(BaseModel):
    percentage: int
    status: str


class CourseProgressSchema(BaseModel):
    course_id: int
    percentage: int
    status: str
    completed_steps: List[str] = []
    locked_content_ids: List[int] = []
    last_activity: Optional[datetime] = None


class LockedContentSchema(BaseModel):
    course_id: int
    locked_content_ids: List[int] = []
