from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class EnrollmentSchema(BaseModel):
    id: int
    user_id: int
    course_id: int
    progress_percentage: int
    status: str
    enrolled_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContentListItemSchema(BaseModel):
    id: int
    module_id: int
    module_title: str
    title: str
    content_type: str
    video_url: Optional[str] = None
    duration_seconds: int = 0
    order_index: int
    quiz_id: Optional[int] = None
    is_locked: bool
    is_completed: bool


class CourseContentListSchema(BaseModel):
    course_id: int
    progress_percentage: int
    status: str
    items: List[ContentListItemSchema] = []


class StudentCourseProgressSchema(BaseModel):
    course_id: int
    course_title: str
    progress: int
    enrolled_at: Optional[datetime] = None


class StudentActivitySchema(BaseModel):
    student_id: int
    name: str
    email: str
    enrolled_courses: List[StudentCourseProgressSchema] = []
    avg_progress: int
    last_activity: Optional[datetime] = None
    status: str  # active, at-risk, inactive
