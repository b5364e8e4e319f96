"""Study session model definitions."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Float, Integer, String, Text
from backend.database import Base

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
SESSION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class StudySession(Base):
    """A tutor-published session that goes through admin moderation."""
    __tablename__ = "study_sessions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text)
    category = Column(String, index=True)
    image_url = Column(String)
    tutor_name = Column(String, nullable=False)
    tutor_email = Column(String, index=True, nullable=False)
    registration_start_date = Column(DateTime, nullable=False)
    registration_end_date = Column(DateTime, nullable=False)
    class_start_date = Column(DateTime, nullable=False)
    class_end_date = Column(DateTime, nullable=False)
    duration_hours = Column(Float)
    fee = Column(Float, nullable=False, default=0)
    status = Column(String, nullable=False, default=STATUS_PENDING)
    rejection_reason = Column(String)
    feedback = Column(String)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    __table_args__ = (
        CheckConstraint('fee >= 0', name='check_study_session_fee_positive'),
    )
