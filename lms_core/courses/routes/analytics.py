from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from lms_core.config import get_db
from lms_core.models import UserInDB
from lms_core.utils.permissions import require_instructor_or_admin
from lms_core.courses.schemas import StudentActivitySchema
from lms_core.services.analytics_service import get_instructor_students

router = APIRouter()


@router.get("/students", response_model=List[StudentActivitySchema])
async def get_students(
    status: Optional[str] = Query(None, pattern="^(all|active|at-risk|inactive)$"),
    search: Optional[str] = None,
    current_user: UserInDB = Depends(require_instructor_or_admin()),
    db: Session = Depends(get_db)
):
    """Students of the instructor's courses, classified by recent activity and progress"""
    return get_instructor_students(current_user, db, status=status, search=search)
