from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from lms_core.models.base import Base


class Progress(Base):
    """One completed step per (student, step_key). Append-only until a course reset."""
    __tablename__ = "progress"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    module_id = Column(Integer, ForeignKey("modules.id", ondelete="SET NULL"), nullable=True)
    content_id = Column(Integer, ForeignKey("course_contents.id", ondelete="CASCADE"), nullable=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=True)
    step_key = Column(String, nullable=False)  # content:<id> or quiz:<id>
    content_type = Column(String, nullable=False)  # video, text, quiz
    status = Column(String, nullable=False, default="completed")
    completed_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("UserInDB")
    course = relationship("Course")
    content = relationship("CourseContent")

    __table_args__ = (
        UniqueConstraint('user_id', 'step_key', name='uq_user_step_key'),
        Index('idx_progress_user_course', 'user_id', 'course_id'),
    )


class ActivityLog(Base):
    __tablename__ = "activity_logs"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # course_enrolled, content_completed, quiz_submitted, course_completed, progress_reset
    activity_type = Column(String, nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=True)
    module_id = Column(Integer, nullable=True)
    content_id = Column(Integer, nullable=True)
    quiz_id = Column(Integer, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
