"""Material model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base


class Material(Base):
    """Study material a tutor attaches to one of their sessions."""
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    session_id = Column(Integer, index=True, nullable=False)
    tutor_email = Column(String, index=True, nullable=False)
    link = Column(String)
    image_url = Column(String)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
