import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_user
from backend.auth.passwords import generate_random_password, hash_password, verify_password
from backend.core.errors import store_failure
from backend.database import get_db
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, USER_ROLES, User
from backend.schemas.user_schema import AuthResponse, UserResponse
from backend.services.login_history import (
    METHOD_LOGIN,
    METHOD_MANUAL,
    METHOD_REGISTER,
    METHOD_SOCIAL,
    record_login,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=['auth'])
token_router = APIRouter(tags=['auth'])

DUPLICATE_EMAIL_DETAIL = 'User already exists with this email.'


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: str = ROLE_STUDENT
    photo_url: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        return value

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in USER_ROLES:
            raise ValueError('Invalid role.')
        return normalized


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class SocialLoginRequest(BaseModel):
    name: str | None = None
    email: EmailStr
    photo_url: str | None = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    photo_url: str | None = None
    phone: str | None = None
    address: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name cannot be blank.')
        return normalized


class LoginHistoryRecordResponse(BaseModel):
    message: str
    recorded: bool


def resolve_registration_role(db: Session, requested_role: str) -> str:
    """Pick the role for a new account.

    The very first account in an empty store becomes the admin so a fresh
    deployment can be bootstrapped. Later accounts get the role they asked
    for, except that admin is never granted on request.
    """
    if db.query(User).count() == 0:
        return ROLE_ADMIN
    if requested_role == ROLE_ADMIN:
        return ROLE_STUDENT
    return requested_role


def build_auth_response(user: User, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        user=UserResponse.model_validate(user),
        access_token=jwt_handler.create_access_token(subject=user.email, extra_claims={'role': user.role}),
    )


@token_router.post('/jwt')
def issue_jwt(claims: dict):
    token = jwt_handler.issue_token_for_claims(claims)
    return {'token': token}


@router.post('/register', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    try:
        if db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_EMAIL_DETAIL)

        user = User(
            name=data.name,
            email=data.email,
            hashed_password=hash_password(data.password),
            role=resolve_registration_role(db, data.role),
            photo_url=data.photo_url,
            auth_provider='password',
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_EMAIL_DETAIL) from exc
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'registering user') from exc

    logger.info('Registered %s with role %s', user.email, user.role)
    record_login(db, user, METHOD_REGISTER, request)

    return build_auth_response(user, 'User registered successfully')


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, request: Request, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'loading user for login') from exc

    if user is None or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid email or password.')

    record_login(db, user, METHOD_LOGIN, request)
    return build_auth_response(user, 'Login successful')


@router.post('/social-login', response_model=AuthResponse)
def social_login(data: SocialLoginRequest, request: Request, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
        if user is None:
            user = User(
                name=(data.name or '').strip() or data.email.split('@')[0],
                email=data.email,
                hashed_password=hash_password(generate_random_password()),
                role=resolve_registration_role(db, ROLE_STUDENT),
                photo_url=data.photo_url,
                auth_provider='social',
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info('Created social account %s with role %s', user.email, user.role)
    except IntegrityError as exc:
        # Two first-time social logins for the same email raced; use the winner.
        db.rollback()
        user = db.query(User).filter(User.email == data.email).first()
        if user is None:
            raise store_failure(db, exc, 'creating social account') from exc
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'creating social account') from exc

    record_login(db, user, METHOD_SOCIAL, request)
    return build_auth_response(user, 'Login successful')


@router.post('/login-history', response_model=LoginHistoryRecordResponse, status_code=status.HTTP_201_CREATED)
def record_login_event(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry = record_login(db, current_user, METHOD_MANUAL, request)
    return LoginHistoryRecordResponse(message='Login recorded', recorded=entry is not None)


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch('/profile', response_model=UserResponse)
def update_profile(
    data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_none=True)
    try:
        for field, value in changes.items():
            setattr(current_user, field, value)
        db.commit()
        db.refresh(current_user)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'updating profile') from exc

    return current_user
