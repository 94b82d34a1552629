"""
Read-only analytics over enrollments and attempts. Nothing here is stored;
student activity status is derived on every read.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from lms_core.config import ACTIVE_WINDOW_DAYS, AT_RISK_PROGRESS_THRESHOLD
from lms_core.courses.schemas import StudentActivitySchema, StudentCourseProgressSchema
from lms_core.models import Course, Enrollment, Quiz, QuizAttempt, UserInDB
from lms_core.quizzes.schemas import InstructorQuizSummarySchema
from lms_core.utils.rounding import round_half_up


def classify_student(
    last_activity: Optional[datetime],
    avg_progress: float,
    now: Optional[datetime] = None,
    active_window_days: int = ACTIVE_WINDOW_DAYS,
    at_risk_threshold: int = AT_RISK_PROGRESS_THRESHOLD
) -> str:
    """
    - active: any activity within the window
    - at-risk: no recent activity and average progress below the threshold
    - inactive: everyone else
    """
    now = now or datetime.utcnow()
    if last_activity is not None and last_activity >= now - timedelta(days=active_window_days):
        return "active"
    if avg_progress < at_risk_threshold:
        return "at-risk"
    return "inactive"


def _instructor_course_query(instructor: UserInDB, db: Session):
    query = db.query(Course)
    if instructor.role != "admin":
        query = query.filter(Course.instructor_id == instructor.id)
    return query


def get_instructor_students(
    instructor: UserInDB,
    db: Session,
    status: Optional[str] = None,
    search: Optional[str] = None,
    now: Optional[datetime] = None
) -> List[StudentActivitySchema]:
    course_ids = [c.id for c in _instructor_course_query(instructor, db).all()]
    if not course_ids:
        return []

    enrollments = db.query(Enrollment).options(
        joinedload(Enrollment.user), joinedload(Enrollment.course)
    ).filter(Enrollment.course_id.in_(course_ids)).order_by(Enrollment.id).all()

    students = {}
    for enrollment in enrollments:
        if not enrollment.user:
            continue
        entry = students.setdefault(enrollment.user_id, {
            "user": enrollment.user,
            "courses": [],
            "total_progress": 0,
            "last_activity": None,
        })
        entry["courses"].append(StudentCourseProgressSchema(
            course_id=enrollment.course_id,
            course_title=enrollment.course.title,
            progress=enrollment.progress_percentage or 0,
            enrolled_at=enrollment.enrolled_at
        ))
        entry["total_progress"] += enrollment.progress_percentage or 0
        if enrollment.last_activity and (
            entry["last_activity"] is None or enrollment.last_activity > entry["last_activity"]
        ):
            entry["last_activity"] = enrollment.last_activity

    result = []
    for student_id, entry in students.items():
        avg_progress = round_half_up(entry["total_progress"] / len(entry["courses"]))
        result.append(StudentActivitySchema(
            student_id=student_id,
            name=entry["user"].name,
            email=entry["user"].email,
            enrolled_courses=entry["courses"],
            avg_progress=avg_progress,
            last_activity=entry["last_activity"],
            status=classify_student(entry["last_activity"], avg_progress, now=now)
        ))

    if status and status != "all":
        result = [s for s in result if s.status == status]

    if search:
        needle = search.lower()
        result = [s for s in result if needle in s.name.lower() or needle in s.email.lower()]

    return result


def get_instructor_quizzes(instructor: UserInDB, db: Session) -> List[InstructorQuizSummarySchema]:
    query = db.query(Quiz).options(joinedload(Quiz.questions))
    if instructor.role != "admin":
        query = query.filter(Quiz.instructor_id == instructor.id)
    quizzes = query.order_by(Quiz.created_at.desc(), Quiz.id.desc()).all()

    summaries = []
    for quiz in quizzes:
        attempts = db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz.id).all()
        total_attempts = len(attempts)
        passed_attempts = len([a for a in attempts if a.passed])
        summaries.append(InstructorQuizSummarySchema(
            id=quiz.id,
            title=quiz.title,
            course_id=quiz.course_id,
            question_count=len(quiz.questions),
            total_attempts=total_attempts,
            passed_attempts=passed_attempts,
            pass_rate=(passed_attempts / total_attempts * 100) if total_attempts else 0.0,
            average_score=(sum(a.score for a in attempts) / total_attempts) if total_attempts else 0.0
        ))
    return summaries
