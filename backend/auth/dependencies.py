import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.database import get_db
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TUTOR, User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_token_email(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized access")

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    email = jwt_handler.email_from_claims(payload)
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    return email


def load_user_by_email(db: Session, email: str) -> User | None:
    try:
        return db.query(User).filter(User.email == email).first()
    except SQLAlchemyError as exc:
        logger.exception('User lookup failed for %s', email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Internal server error',
        ) from exc


def get_current_user(
    email: str = Depends(get_token_email),
    db: Session = Depends(get_db),
) -> User:
    user = load_user_by_email(db, email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def require_role(required_role: str):
    """Build a dependency that admits only callers whose stored role matches.

    The role is read from the store on every call, so a role change takes
    effect on the caller's next request.
    """

    def dependency(
        email: str = Depends(get_token_email),
        db: Session = Depends(get_db),
    ) -> User:
        user = load_user_by_email(db, email)
        if user is None or user.role != required_role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden: {required_role} access required",
            )
        return user

    dependency.__name__ = f"require_{required_role}"
    return dependency


require_student = require_role(ROLE_STUDENT)
require_tutor = require_role(ROLE_TUTOR)
require_admin = require_role(ROLE_ADMIN)
