import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_student
from backend.core.errors import store_failure
from backend.database import get_db
from backend.models.material import Material
from backend.models.note import Note
from backend.models.review import Review
from backend.models.study_session import StudySession
from backend.models.user import User
from backend.schemas.session_schema import (
    BookedSessionResponse,
    MaterialResponse,
    ReviewResponse,
    StudySessionResponse,
)
from backend.services import booking
from backend.services.ownership import get_owned_or_404

logger = logging.getLogger(__name__)

router = APIRouter(tags=['student'])

MAX_NOTE_TITLE_LENGTH = 200


class CreateReviewRequest(BaseModel):
    rating: int
    comment: str | None = None

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, value: int) -> int:
        if value < 1 or value > 5:
            raise ValueError('Rating must be between 1 and 5.')
        return value

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class NoteRequest(BaseModel):
    title: str
    description: str | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title is required.')
        if len(normalized) > MAX_NOTE_TITLE_LENGTH:
            raise ValueError(f'Title must be {MAX_NOTE_TITLE_LENGTH} characters or fewer.')
        return normalized


class UpdateNoteRequest(BaseModel):
    title: str | None = None
    description: str | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title cannot be blank.')
        return normalized


class NoteResponse(BaseModel):
    id: int
    student_email: str
    title: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


@router.post('/book-session/{session_id}', response_model=BookedSessionResponse, status_code=status.HTTP_201_CREATED)
def book_session(
    session_id: int,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        booked = booking.book_session(db, current_user.email, session_id)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'booking session') from exc

    return BookedSessionResponse(
        id=booked.id,
        student_email=booked.student_email,
        session_id=booked.session_id,
        tutor_email=booked.tutor_email,
        booked_at=booked.booked_at,
    )


@router.get('/booked-sessions', response_model=list[BookedSessionResponse])
def list_booked_sessions(
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        rows = booking.list_student_bookings(db, current_user.email)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing booked sessions') from exc

    return [
        BookedSessionResponse(
            id=booked.id,
            student_email=booked.student_email,
            session_id=booked.session_id,
            tutor_email=booked.tutor_email,
            booked_at=booked.booked_at,
            session=StudySessionResponse.model_validate(session) if session else None,
        )
        for booked, session in rows
    ]


@router.post('/reviews/{session_id}', response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    session_id: int,
    data: CreateReviewRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        if db.query(StudySession.id).filter(StudySession.id == session_id).first() is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Session not found.')

        review = Review(
            session_id=session_id,
            student_email=current_user.email,
            student_name=current_user.name,
            rating=data.rating,
            comment=data.comment,
        )
        db.add(review)
        db.commit()
        db.refresh(review)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'creating review') from exc

    return review


@router.get('/materials/{session_id}', response_model=list[MaterialResponse])
def list_booked_session_materials(
    session_id: int,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        if not booking.has_booked(db, current_user.email, session_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Booked session not found.')

        return db.query(Material).filter(
            Material.session_id == session_id,
        ).order_by(Material.created_at.desc(), Material.id.desc()).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing session materials') from exc


@router.post('/notes', response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
def create_note(
    data: NoteRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    note = Note(student_email=current_user.email, title=data.title, description=data.description)
    try:
        db.add(note)
        db.commit()
        db.refresh(note)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'creating note') from exc

    return note


@router.get('/notes', response_model=list[NoteResponse])
def list_notes(
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        return db.query(Note).filter(
            Note.student_email == current_user.email,
        ).order_by(Note.created_at.desc(), Note.id.desc()).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing notes') from exc


@router.patch('/notes/{note_id}', response_model=NoteResponse)
def update_note(
    note_id: int,
    data: UpdateNoteRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        note = get_owned_or_404(db, Note, note_id, Note.student_email, current_user.email, 'Note')
        for field, value in data.model_dump(exclude_none=True).items():
            setattr(note, field, value)
        db.commit()
        db.refresh(note)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'updating note') from exc

    return note


@router.delete('/notes/{note_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    note_id: int,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        note = get_owned_or_404(db, Note, note_id, Note.student_email, current_user.email, 'Note')
        db.delete(note)
        db.commit()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'deleting note') from exc
