from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms_core.config import get_db
from lms_core.models import UserInDB
from lms_core.auth.dependencies import get_current_user_dependency
from lms_core.utils.permissions import require_student, require_enrollment
from lms_core.courses.schemas import EnrollmentSchema, CourseContentListSchema, ContentListItemSchema
from lms_core.progress.aggregator import content_step_key
from lms_core.progress.locking import locked_content_ids
from lms_core.services import enrollment_service

router = APIRouter()


@router.post("/{course_id}/enroll", response_model=EnrollmentSchema)
async def enroll_in_course(
    course_id: int,
    current_user: UserInDB = Depends(require_student()),
    db: Session = Depends(get_db)
):
    return enrollment_service.enroll(current_user.id, course_id, db)


@router.get("/{course_id}/content", response_model=CourseContentListSchema)
async def get_course_content(
    course_id: int,
    current_user: UserInDB = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Course content in learning order, with lock and completion flags for the current user"""
    enrollment = require_enrollment(current_user.id, course_id, db)

    content = enrollment_service.get_ordered_course_content(course_id, db)
    completed = enrollment_service.get_completed_keys(current_user.id, course_id, db)
    locked = locked_content_ids(content, completed)

    items = [
        ContentListItemSchema(
            id=item.id,
            module_id=item.module_id,
            module_title=item.module.title,
            title=item.title,
            content_type=item.content_type,
            video_url=item.video_url if item.id not in locked else None,
            duration_seconds=item.duration_seconds or 0,
            order_index=item.order_index,
            quiz_id=item.quiz_id,
            is_locked=item.id in locked,
            is_completed=content_step_key(item.id) in completed
        )
        for item in content
    ]

    return CourseContentListSchema(
        course_id=course_id,
        progress_percentage=enrollment.progress_percentage or 0,
        status=enrollment.status,
        items=items
    )
