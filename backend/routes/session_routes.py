import logging
import math
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_tutor
from backend.core.errors import store_failure
from backend.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, paginate, total_pages
from backend.database import get_db
from backend.models.review import Review
from backend.models.study_session import STATUS_PENDING, StudySession
from backend.models.user import ROLE_TUTOR, User
from backend.schemas.session_schema import (
    PaginatedSessionsResponse,
    ReviewResponse,
    SessionDetailResponse,
    StudySessionResponse,
)
from backend.schemas.user_schema import TutorPublicResponse
from backend.services import session_lifecycle

logger = logging.getLogger(__name__)

router = APIRouter(tags=['sessions'])


class CreateSessionRequest(BaseModel):
    title: str
    description: str | None = None
    category: str | None = None
    image_url: str | None = None
    registration_start_date: datetime
    registration_end_date: datetime
    class_start_date: datetime
    class_end_date: datetime
    duration_hours: float | None = None
    fee: float = 0

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title is required.')
        return normalized

    @field_validator('fee')
    @classmethod
    def validate_fee(cls, value: float) -> float:
        if not math.isfinite(value) or value < 0:
            raise ValueError('Fee must be a non-negative number.')
        return value

    @field_validator(
        'registration_start_date',
        'registration_end_date',
        'class_start_date',
        'class_end_date',
    )
    @classmethod
    def to_naive_local(cls, value: datetime) -> datetime:
        # Stored and compared as naive local time.
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @model_validator(mode='after')
    def validate_date_ranges(self):
        if self.registration_end_date < self.registration_start_date:
            raise ValueError('Registration end date must not be before its start date.')
        if self.class_end_date < self.class_start_date:
            raise ValueError('Class end date must not be before its start date.')
        return self


@router.get('', response_model=PaginatedSessionsResponse)
def list_public_sessions(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: str | None = Query(default=None),
    category: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        query = session_lifecycle.public_sessions_query(db, datetime.now(), category)
        query = session_lifecycle.apply_sort(query, sort)
        sessions, total = paginate(query, page, limit)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing public sessions') from exc

    return PaginatedSessionsResponse(
        sessions=[StudySessionResponse.model_validate(session) for session in sessions],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.get('/tutors', response_model=list[TutorPublicResponse])
def list_tutors(db: Session = Depends(get_db)):
    try:
        return db.query(User).filter(User.role == ROLE_TUTOR).order_by(User.name.asc()).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing tutors') from exc


@router.post('/create', response_model=StudySessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    data: CreateSessionRequest,
    current_user: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    session = StudySession(
        **data.model_dump(),
        tutor_name=current_user.name,
        tutor_email=current_user.email,
        status=STATUS_PENDING,
    )
    try:
        db.add(session)
        db.commit()
        db.refresh(session)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'creating session') from exc

    logger.info('Tutor %s created session %s (pending review)', current_user.email, session.id)
    return session


@router.get('/tutor/my-sessions', response_model=list[StudySessionResponse])
def list_my_sessions(
    current_user: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    try:
        return db.query(StudySession).filter(
            StudySession.tutor_email == current_user.email,
        ).order_by(StudySession.created_at.desc(), StudySession.id.desc()).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing tutor sessions') from exc


@router.patch('/rerequest-approval/{session_id}', response_model=StudySessionResponse)
def rerequest_approval(
    session_id: int,
    current_user: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    try:
        return session_lifecycle.rerequest_approval(db, session_id, current_user.email)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 're-requesting approval') from exc


@router.get('/{session_id}', response_model=SessionDetailResponse)
def get_session_detail(session_id: int, db: Session = Depends(get_db)):
    try:
        session = db.query(StudySession).filter(StudySession.id == session_id).first()
        if session is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Session not found.')

        reviews = db.query(Review).filter(
            Review.session_id == session_id,
        ).order_by(Review.created_at.desc(), Review.id.desc()).all()
        tutor = db.query(User).filter(User.email == session.tutor_email).first()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'loading session detail') from exc

    return SessionDetailResponse(
        session=StudySessionResponse.model_validate(session),
        reviews=[ReviewResponse.model_validate(review) for review in reviews],
        tutor=TutorPublicResponse.model_validate(tutor) if tutor else None,
        average_rating=session_lifecycle.average_rating([review.rating for review in reviews]),
        review_count=len(reviews),
    )
