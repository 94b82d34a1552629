from sqlalchemy import Column, String, Integer, DateTime, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from lms_core.models.base import Base


class UserInDB(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="student")  # student, instructor, admin
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")
    created_courses = relationship("Course", back_populates="instructor")
    quiz_attempts = relationship("QuizAttempt", back_populates="user", cascade="all, delete-orphan")
