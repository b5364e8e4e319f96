"""Booking workflow: one booking per (student, session) pair."""
import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.models.booked_session import BookedSession
from backend.models.study_session import StudySession

logger = logging.getLogger(__name__)

DUPLICATE_BOOKING_DETAIL = 'You have already booked this session.'


def book_session(db: Session, student_email: str, session_id: int) -> BookedSession:
    session = db.query(StudySession).filter(StudySession.id == session_id).first()
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Session not found.')

    existing = db.query(BookedSession).filter(
        BookedSession.student_email == student_email,
        BookedSession.session_id == session_id,
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_BOOKING_DETAIL)

    booking = BookedSession(
        student_email=student_email,
        session_id=session_id,
        tutor_email=session.tutor_email,
    )
    db.add(booking)
    try:
        db.commit()
    except IntegrityError as exc:
        # A concurrent request inserted the same pair after our check.
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_BOOKING_DETAIL) from exc
    db.refresh(booking)

    logger.info('Student %s booked session %s', student_email, session_id)
    return booking


def list_student_bookings(db: Session, student_email: str) -> list[tuple[BookedSession, StudySession | None]]:
    rows = (
        db.query(BookedSession, StudySession)
        .outerjoin(StudySession, StudySession.id == BookedSession.session_id)
        .filter(BookedSession.student_email == student_email)
        .order_by(BookedSession.booked_at.desc(), BookedSession.id.desc())
        .all()
    )
    return [(booking, session) for booking, session in rows]


def has_booked(db: Session, student_email: str, session_id: int) -> bool:
    return db.query(BookedSession.id).filter(
        BookedSession.student_email == student_email,
        BookedSession.session_id == session_id,
    ).first() is not None
