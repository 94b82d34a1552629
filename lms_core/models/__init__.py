from lms_core.models.base import Base

from lms_core.auth.models import UserInDB
from lms_core.courses.models import Course, Module, CourseContent, Enrollment
from lms_core.quizzes.models import Quiz, QuizQuestion, QuizAttempt
from lms_core.progress.models import Progress, ActivityLog

__all__ = [
    "Base",
    "UserInDB",
    "Course", "Module", "CourseContent", "Enrollment",
    "Quiz", "QuizQuestion", "QuizAttempt",
    "Progress", "ActivityLog",
]
