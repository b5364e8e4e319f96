"""Login history model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base


class LoginHistory(Base):
    """Append-only audit record of a sign-in event."""
    __tablename__ = "login_history"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, index=True, nullable=False)
    name = Column(String)
    method = Column(String, nullable=False)  # register/login/social/manual
    ip_address = Column(String)
    user_agent = Column(String)
    created_at = Column(DateTime, default=datetime.now, index=True, nullable=False)
