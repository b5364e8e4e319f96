"""Moderation state machine and public visibility rules for study sessions.

A session is created ``pending``. An admin moves it to ``approved`` or
``rejected``. The owning tutor may send a rejected session back to
``pending``. Deleting a session also deletes the materials attached to it.
"""
import logging
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Query, Session

from backend.models.material import Material
from backend.models.study_session import (
    SESSION_STATUSES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    StudySession,
)

logger = logging.getLogger(__name__)

SORT_BY_FEE = {
    'asc': StudySession.fee.asc,
    'desc': StudySession.fee.desc,
}


def normalize_status(value: str) -> str:
    normalized = (value or '').strip().lower()
    if normalized not in SESSION_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Invalid status. Expected one of: {", ".join(SESSION_STATUSES)}.',
        )
    return normalized


def check_status_transition(current: str, requested: str) -> str:
    """Return the status an admin decision moves a session to.

    Any known status is reachable from any other, repeats included.
    """
    return normalize_status(requested)


def apply_review_decision(
    session: StudySession,
    requested_status: str,
    fee: float | None = None,
    rejection_reason: str | None = None,
    feedback: str | None = None,
) -> StudySession:
    next_status = check_status_transition(session.status, requested_status)

    session.status = next_status
    if fee is not None:
        session.fee = fee
    if rejection_reason is not None:
        session.rejection_reason = rejection_reason
    if feedback is not None:
        session.feedback = feedback
    return session


def rerequest_approval(db: Session, session_id: int, tutor_email: str) -> StudySession:
    session = db.query(StudySession).filter(
        StudySession.id == session_id,
        StudySession.tutor_email == tutor_email,
        StudySession.status == STATUS_REJECTED,
    ).first()

    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Session not found or not eligible for re-request.',
        )

    session.status = STATUS_PENDING
    db.commit()
    db.refresh(session)
    logger.info('Session %s re-requested for approval by %s', session.id, tutor_email)
    return session


def delete_session_cascade(db: Session, session_id: int) -> int:
    session = db.query(StudySession).filter(StudySession.id == session_id).first()
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Session not found.')

    deleted_materials = db.query(Material).filter(
        Material.session_id == session_id,
    ).delete(synchronize_session=False)
    db.delete(session)
    db.commit()

    logger.info('Deleted session %s and %d material(s)', session_id, deleted_materials)
    return deleted_materials


def public_listing_filters(now: datetime) -> tuple:
    """Approved sessions whose registration window has not closed at ``now``."""
    return (
        StudySession.status == STATUS_APPROVED,
        StudySession.registration_end_date >= now,
    )


def public_sessions_query(db: Session, now: datetime, category: str | None = None) -> Query:
    query = db.query(StudySession).filter(*public_listing_filters(now))
    if category:
        query = query.filter(StudySession.category == category.strip())
    return query


def apply_sort(query: Query, sort: str | None) -> Query:
    if not sort:
        return query.order_by(StudySession.created_at.desc(), StudySession.id.desc())

    order = SORT_BY_FEE.get(sort.strip().lower())
    if order is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid sort. Use 'asc' or 'desc' to sort by fee.",
        )
    return query.order_by(order(), StudySession.id.asc())


def average_rating(ratings: list[int]) -> float:
    if not ratings:
        return 0
    return round(sum(ratings) / len(ratings), 1)
