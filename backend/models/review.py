"""Review model definitions."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text
from backend.database import Base


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, index=True, nullable=False)
    student_email = Column(String, nullable=False)
    student_name = Column(String)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    __table_args__ = (
        CheckConstraint('rating >= 1 AND rating <= 5', name='check_review_rating_range'),
    )
