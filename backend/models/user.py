"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base

ROLE_STUDENT = "student"
ROLE_TUTOR = "tutor"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_STUDENT, ROLE_TUTOR, ROLE_ADMIN)


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_STUDENT)  # student/tutor/admin
    photo_url = Column(String)
    phone = Column(String)
    address = Column(String)
    auth_provider = Column(String, nullable=False, default="password")
    created_at = Column(DateTime, default=datetime.now, nullable=False)
