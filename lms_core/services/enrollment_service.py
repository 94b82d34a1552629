"""
Enrollment state machine.

States are ``active`` and ``completed``. Completion events append Progress
rows and trigger a recompute from the full completed-step set; the only
paths that move a student backwards or forwards regardless of progress are
the explicit reset and force-complete actions.
"""
from datetime import datetime
from typing import List, Set, Union
import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from lms_core.models import Course, CourseContent, Enrollment, Progress, ActivityLog
from lms_core.progress.aggregator import (
    recompute, content_step_key, quiz_step_key, ProgressResult
)
from lms_core.progress.events import ContentCompleted, QuizPassed
from lms_core.progress.locking import locked_content_ids, order_course_content
from lms_core.progress.schemas import EnrollmentProgressSchema, CourseProgressSchema
from lms_core.utils.permissions import get_enrollment, require_enrollment

logger = logging.getLogger(__name__)

ACTIVE = "active"
COMPLETED = "completed"


# =============================================================================
# READ HELPERS
# =============================================================================

def get_ordered_course_content(course_id: int, db: Session) -> List[CourseContent]:
    items = db.query(CourseContent).options(
        joinedload(CourseContent.module)
    ).filter(CourseContent.course_id == course_id).all()
    return order_course_content(items)


def get_completed_keys(user_id: int, course_id: int, db: Session) -> Set[str]:
    """Completed-step set derived from Progress rows (the only source of truth)."""
    rows = db.query(Progress.step_key).filter(
        Progress.user_id == user_id,
        Progress.course_id == course_id,
        Progress.status == "completed"
    ).all()
    return {row[0] for row in rows}


def log_activity(db: Session, user_id: int, activity_type: str, **fields):
    db.add(ActivityLog(user_id=user_id, activity_type=activity_type, **fields))


# =============================================================================
# COMPLETION EVENTS
# =============================================================================

def _record_step(
    db: Session,
    user_id: int,
    course_id: int,
    step_key: str,
    content_type: str,
    module_id: int = None,
    content_id: int = None,
    quiz_id: int = None
) -> Progress:
    """Insert a completed step unless it is already recorded (set semantics)."""
    progress = _find_step(db, user_id, step_key)
    if progress:
        return progress

    return _insert_step(db, Progress(
        user_id=user_id,
        course_id=course_id,
        module_id=module_id,
        content_id=content_id,
        quiz_id=quiz_id,
        step_key=step_key,
        content_type=content_type,
        status="completed",
        completed_at=datetime.utcnow()
    ))


def _find_step(db: Session, user_id: int, step_key: str):
    return db.query(Progress).filter(
        Progress.user_id == user_id,
        Progress.step_key == step_key
    ).first()


def _insert_step(db: Session, progress: Progress) -> Progress:
    """
    Insert inside a savepoint. A concurrent request may have committed the
    same step since the lookup; the unique constraint then fails only the
    savepoint and the existing row is returned.
    """
    try:
        with db.begin_nested():
            db.add(progress)
    except IntegrityError:
        logger.info(f"Step {progress.step_key} already recorded for user {progress.user_id}")
        return _find_step(db, progress.user_id, progress.step_key)
    return progress


def recompute_enrollment(enrollment: Enrollment, db: Session) -> ProgressResult:
    """
    Recompute the percentage from the authoritative completed-step set and
    apply the resulting status. The stored percentage never decreases here.
    """
    content = get_ordered_course_content(enrollment.course_id, db)
    completed = get_completed_keys(enrollment.user_id, enrollment.course_id, db)
    result = recompute(content, completed)

    enrollment.last_activity = datetime.utcnow()
    if result.total_steps == 0:
        return result

    previous_status = enrollment.status
    enrollment.progress_percentage = max(enrollment.progress_percentage or 0, result.percentage)
    enrollment.status = COMPLETED if enrollment.progress_percentage == 100 else ACTIVE

    if enrollment.status == COMPLETED and previous_status != COMPLETED:
        enrollment.completed_at = datetime.utcnow()
        log_activity(db, enrollment.user_id, "course_completed", course_id=enrollment.course_id)
        logger.info(f"User {enrollment.user_id} completed course {enrollment.course_id}")

    return result


def apply_completion_event(
    event: Union[ContentCompleted, QuizPassed],
    enrollment: Enrollment,
    db: Session
) -> List[Progress]:
    """
    Write the Progress rows for one completion event and recompute the
    enrollment. Does not commit: the caller commits both updates together.
    """
    recorded = []

    if isinstance(event, ContentCompleted):
        recorded.append(_record_step(
            db, event.user_id, event.course_id, content_step_key(event.content_id),
            event.content_type, module_id=event.module_id, content_id=event.content_id
        ))
    elif isinstance(event, QuizPassed):
        recorded.append(_record_step(
            db, event.user_id, event.course_id, quiz_step_key(event.quiz_id),
            "quiz", module_id=event.module_id, quiz_id=event.quiz_id
        ))
        linked = db.query(CourseContent).filter(
            CourseContent.id.in_(event.linked_content_ids),
            CourseContent.course_id == event.course_id
        ).all() if event.linked_content_ids else []
        for content in linked:
            recorded.append(_record_step(
                db, event.user_id, event.course_id, content_step_key(content.id),
                content.content_type, module_id=content.module_id, content_id=content.id
            ))
    else:
        raise TypeError(f"Unsupported completion event: {type(event).__name__}")

    result = recompute_enrollment(enrollment, db)
    logger.info(
        f"{type(event).__name__} for user {event.user_id} in course {event.course_id}: "
        f"{result.completed_steps}/{result.total_steps} steps, {enrollment.progress_percentage}%"
    )
    return recorded


# =============================================================================
# OPERATIONS
# =============================================================================

def enroll(user_id: int, course_id: int, db: Session) -> Enrollment:
    course = db.query(Course).filter(Course.id == course_id, Course.is_active == True).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    enrollment = get_enrollment(user_id, course_id, db)
    if enrollment:
        return enrollment

    now = datetime.utcnow()
    enrollment = Enrollment(
        user_id=user_id,
        course_id=course_id,
        progress_percentage=0,
        status=ACTIVE,
        enrolled_at=now,
        last_activity=now
    )
    db.add(enrollment)
    log_activity(db, user_id, "course_enrolled", course_id=course_id)
    db.commit()
    db.refresh(enrollment)
    logger.info(f"User {user_id} enrolled in course {course_id}")
    return enrollment


def mark_content_complete(user_id: int, course_id: int, module_id: int, content_id: int, db: Session) -> Progress:
    enrollment = require_enrollment(user_id, course_id, db)

    content = db.query(CourseContent).filter(
        CourseContent.id == content_id,
        CourseContent.course_id == course_id,
        CourseContent.module_id == module_id
    ).first()
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    if content.content_type == "quiz":
        raise HTTPException(status_code=400, detail="Quiz content is completed by passing its quiz")

    event = ContentCompleted(
        user_id=user_id,
        course_id=course_id,
        module_id=module_id,
        content_id=content_id,
        content_type=content.content_type
    )
    try:
        progress = apply_completion_event(event, enrollment, db)[0]
        log_activity(
            db, user_id, "content_completed",
            course_id=course_id, module_id=module_id, content_id=content_id
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to record completion of content {content_id} for user {user_id}")
        raise HTTPException(status_code=500, detail="Failed to record content completion")

    db.refresh(progress)
    return progress


def get_locked_content(user_id: int, course_id: int, db: Session) -> Set[int]:
    require_enrollment(user_id, course_id, db)
    content = get_ordered_course_content(course_id, db)
    return locked_content_ids(content, get_completed_keys(user_id, course_id, db))


def _enrollment_or_404(user_id: int, course_id: int, db: Session) -> Enrollment:
    enrollment = get_enrollment(user_id, course_id, db)
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return enrollment


def get_enrollment_progress(user_id: int, course_id: int, db: Session) -> EnrollmentProgressSchema:
    enrollment = _enrollment_or_404(user_id, course_id, db)
    return EnrollmentProgressSchema(
        percentage=enrollment.progress_percentage or 0,
        status=enrollment.status
    )


def get_course_progress(user_id: int, course_id: int, db: Session) -> CourseProgressSchema:
    enrollment = require_enrollment(user_id, course_id, db)
    completed = get_completed_keys(user_id, course_id, db)
    content = get_ordered_course_content(course_id, db)
    return CourseProgressSchema(
        course_id=course_id,
        percentage=enrollment.progress_percentage or 0,
        status=enrollment.status,
        completed_steps=sorted(completed),
        locked_content_ids=sorted(locked_content_ids(content, completed)),
        last_activity=enrollment.last_activity
    )


def reset_progress(user_id: int, course_id: int, db: Session) -> Enrollment:
    """The only operation that deletes Progress history."""
    enrollment = _enrollment_or_404(user_id, course_id, db)

    try:
        deleted = db.query(Progress).filter(
            Progress.user_id == user_id,
            Progress.course_id == course_id
        ).delete(synchronize_session=False)

        enrollment.progress_percentage = 0
        enrollment.status = ACTIVE
        enrollment.completed_at = None
        enrollment.last_activity = datetime.utcnow()
        log_activity(db, user_id, "progress_reset", course_id=course_id)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to reset progress for user {user_id} in course {course_id}")
        raise HTTPException(status_code=500, detail="Failed to reset course progress")

    logger.info(f"Reset progress for user {user_id} in course {course_id} ({deleted} records removed)")
    db.refresh(enrollment)
    return enrollment


def force_complete_course(user_id: int, course_id: int, db: Session) -> Enrollment:
    """Manual escape hatch: completes the course regardless of actual progress."""
    enrollment = _enrollment_or_404(user_id, course_id, db)

    was_completed = enrollment.status == COMPLETED
    enrollment.progress_percentage = 100
    enrollment.status = COMPLETED
    enrollment.last_activity = datetime.utcnow()
    if not enrollment.completed_at:
        enrollment.completed_at = datetime.utcnow()
    if not was_completed:
        log_activity(db, user_id, "course_completed", course_id=course_id, details={"manual": True})
        logger.info(f"User {user_id} manually completed course {course_id}")

    db.commit()
    db.refresh(enrollment)
    return enrollment
