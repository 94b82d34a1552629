from fastapi import HTTPException, Depends
from sqlalchemy.orm import Session
from typing import List
import logging

from lms_core.models import UserInDB, Course, Enrollment
from lms_core.auth.dependencies import get_current_user_dependency

logger = logging.getLogger(__name__)


def require_role(allowed_roles: List[str]):
    """
    Dependency factory to require specific roles
    Usage: Depends(require_role(["instructor", "admin"]))
    """
    def role_checker(current_user: UserInDB = Depends(get_current_user_dependency)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied. Required roles: {', '.join(allowed_roles)}"
            )
        return current_user
    return role_checker


def require_instructor_or_admin():
    """Require instructor or admin role"""
    return require_role(["instructor", "admin"])


def require_student():
    return require_role(["student"])


def get_enrollment(user_id: int, course_id: int, db: Session):
    return db.query(Enrollment).filter(
        Enrollment.user_id == user_id,
        Enrollment.course_id == course_id
    ).first()


def require_enrollment(user_id: int, course_id: int, db: Session) -> Enrollment:
    """Return the student's enrollment or raise 403 if there is none."""
    enrollment = get_enrollment(user_id, course_id, db)
    if not enrollment:
        logger.warning(f"User {user_id} is not enrolled in course {course_id}")
        raise HTTPException(status_code=403, detail="Not enrolled in this course")
    return enrollment


def can_manage_course(course: Course, user: UserInDB) -> bool:
    """Admins manage every course; instructors only their own."""
    if user.role == "admin":
        return True
    return user.role == "instructor" and course.instructor_id == user.id
