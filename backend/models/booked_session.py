"""Booked session model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from backend.database import Base


class BookedSession(Base):
    """Links a student to a study session they booked."""
    __tablename__ = "booked_sessions"

    id = Column(Integer, primary_key=True, index=True)
    student_email = Column(String, index=True, nullable=False)
    session_id = Column(Integer, index=True, nullable=False)
    tutor_email = Column(String)
    booked_at = Column(DateTime, default=datetime.now, nullable=False)

    __table_args__ = (
        UniqueConstraint('student_email', 'session_id', name='uq_booked_sessions_student_session'),
    )
