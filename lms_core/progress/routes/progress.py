from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms_core.config import get_db
from lms_core.models import UserInDB
from lms_core.auth.dependencies import get_current_user_dependency
from lms_core.utils.permissions import require_student
from lms_core.progress.schemas import (
    ContentCompleteSchema, ProgressSchema, EnrollmentProgressSchema,
    CourseProgressSchema, LockedContentSchema
)
from lms_core.services import enrollment_service

router = APIRouter()


@router.post("/content/complete", response_model=ProgressSchema)
async def mark_content_complete(
    data: ContentCompleteSchema,
    current_user: UserInDB = Depends(require_student()),
    db: Session = Depends(get_db)
):
    """Record a finished video or text item and recompute course progress"""
    return enrollment_service.mark_content_complete(
        current_user.id, data.course_id, data.module_id, data.content_id, db
    )


@router.get("/course/{course_id}", response_model=CourseProgressSchema)
async def get_course_progress(
    course_id: int,
    current_user: UserInDB = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Completed steps, percentage and locks for the current user"""
    return enrollment_service.get_course_progress(current_user.id, course_id, db)


@router.get("/course/{course_id}/locked", response_model=LockedContentSchema)
async def get_locked_content(
    course_id: int,
    current_user: UserInDB = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    locked = enrollment_service.get_locked_content(current_user.id, course_id, db)
    return LockedContentSchema(course_id=course_id, locked_content_ids=sorted(locked))


@router.get("/course/{course_id}/enrollment", response_model=EnrollmentProgressSchema)
async def get_enrollment_progress(
    course_id: int,
    current_user: UserInDB = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    return enrollment_service.get_enrollment_progress(current_user.id, course_id, db)


@router.post("/course/{course_id}/reset", response_model=EnrollmentProgressSchema)
async def reset_course_progress(
    course_id: int,
    current_user: UserInDB = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Start the course over: removes all progress records for it"""
    enrollment = enrollment_service.reset_progress(current_user.id, course_id, db)
    return EnrollmentProgressSchema(percentage=enrollment.progress_percentage, status=enrollment.status)


@router.post("/course/{course_id}/complete", response_model=EnrollmentProgressSchema)
async def complete_course(
    course_id: int,
    current_user: UserInDB = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Mark the course completed regardless of recorded progress"""
    enrollment = enrollment_service.force_complete_course(current_user.id, course_id, db)
    return EnrollmentProgressSchema(percentage=enrollment.progress_percentage, status=enrollment.status)
