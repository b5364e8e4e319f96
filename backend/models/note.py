"""Note model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from backend.database import Base


class Note(Base):
    """Private scratch note, visible only to the student who wrote it."""
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    student_email = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)
