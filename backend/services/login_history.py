import logging

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.login_history import LoginHistory
from backend.models.user import User

logger = logging.getLogger(__name__)

METHOD_REGISTER = 'register'
METHOD_LOGIN = 'login'
METHOD_SOCIAL = 'social'
METHOD_MANUAL = 'manual'


def record_login(db: Session, user: User, method: str, request: Request | None = None) -> LoginHistory | None:
    """Append a login-history entry after the user write has been committed.

    A failed append leaves a gap in the audit trail and is logged; the
    caller's request still succeeds.
    """
    entry = LoginHistory(
        email=user.email,
        name=user.name,
        method=method,
        ip_address=request.client.host if request is not None and request.client else None,
        user_agent=request.headers.get('user-agent') if request is not None else None,
    )
    try:
        db.add(entry)
        db.commit()
        db.refresh(entry)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Failed to record %s login for %s', method, user.email)
        return None
    return entry
