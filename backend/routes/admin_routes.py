import logging
import math
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_admin
from backend.core.errors import store_failure
from backend.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, paginate, total_pages
from backend.database import get_db
from backend.models.login_history import LoginHistory
from backend.models.material import Material
from backend.models.study_session import StudySession
from backend.models.user import USER_ROLES, User
from backend.schemas.session_schema import MaterialResponse, PaginatedSessionsResponse, StudySessionResponse
from backend.schemas.user_schema import PaginatedUsersResponse, UserResponse
from backend.services import session_lifecycle

logger = logging.getLogger(__name__)

router = APIRouter(tags=['admin'])


class UpdateRoleRequest(BaseModel):
    role: str

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in USER_ROLES:
            raise ValueError('Invalid role.')
        return normalized


class UpdateSessionStatusRequest(BaseModel):
    status: str
    fee: float | None = None
    rejection_reason: str | None = None
    feedback: str | None = None

    @field_validator('fee')
    @classmethod
    def validate_fee(cls, value: float | None) -> float | None:
        if value is not None and (not math.isfinite(value) or value < 0):
            raise ValueError('Fee must be a non-negative number.')
        return value


class DeleteSessionResponse(BaseModel):
    message: str
    deleted_materials: int


class LoginHistoryResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    method: str
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaginatedLoginHistoryResponse(BaseModel):
    history: list[LoginHistoryResponse]
    total: int
    page: int
    limit: int
    total_pages: int


@router.get('/users', response_model=PaginatedUsersResponse, dependencies=[Depends(require_admin)])
def list_users(
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(User)
        if search and search.strip():
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        users, total = paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing users') from exc

    return PaginatedUsersResponse(
        users=[UserResponse.model_validate(user) for user in users],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.patch('/users/{user_id}/role', response_model=UserResponse)
def update_user_role(
    user_id: int,
    data: UpdateRoleRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found.')

        previous_role = user.role
        user.role = data.role
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'updating user role') from exc

    logger.info('Admin %s changed role of %s from %s to %s', current_user.email, user.email, previous_role, user.role)
    return user


@router.get('/sessions', response_model=PaginatedSessionsResponse, dependencies=[Depends(require_admin)])
def list_all_sessions(
    status_filter: str | None = Query(default=None, alias='status'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(StudySession)
        if status_filter:
            query = query.filter(StudySession.status == session_lifecycle.normalize_status(status_filter))
        query = query.order_by(StudySession.created_at.desc(), StudySession.id.desc())
        sessions, total = paginate(query, page, limit)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing sessions') from exc

    return PaginatedSessionsResponse(
        sessions=[StudySessionResponse.model_validate(session) for session in sessions],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.get('/sessions/{session_id}', response_model=StudySessionResponse, dependencies=[Depends(require_admin)])
def get_session(
    session_id: int,
    db: Session = Depends(get_db),
):
    try:
        session = db.query(StudySession).filter(StudySession.id == session_id).first()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'loading session') from exc

    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Session not found.')
    return session


@router.patch('/sessions/{session_id}/status', response_model=StudySessionResponse)
def update_session_status(
    session_id: int,
    data: UpdateSessionStatusRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        session = db.query(StudySession).filter(StudySession.id == session_id).first()
        if session is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Session not found.')

        previous_status = session.status
        session_lifecycle.apply_review_decision(
            session,
            data.status,
            fee=data.fee,
            rejection_reason=data.rejection_reason,
            feedback=data.feedback,
        )
        db.commit()
        db.refresh(session)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'updating session status') from exc

    logger.info(
        'Admin %s moved session %s from %s to %s',
        current_user.email,
        session.id,
        previous_status,
        session.status,
    )
    return session


@router.delete('/sessions/{session_id}', response_model=DeleteSessionResponse, dependencies=[Depends(require_admin)])
def delete_session(
    session_id: int,
    db: Session = Depends(get_db),
):
    try:
        deleted_materials = session_lifecycle.delete_session_cascade(db, session_id)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'deleting session') from exc

    return DeleteSessionResponse(message='Session deleted', deleted_materials=deleted_materials)


@router.get('/materials', response_model=list[MaterialResponse], dependencies=[Depends(require_admin)])
def list_all_materials(db: Session = Depends(get_db)):
    try:
        return db.query(Material).order_by(Material.created_at.desc(), Material.id.desc()).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing materials') from exc


@router.delete('/materials/{material_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_any_material(
    material_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        material = db.query(Material).filter(Material.id == material_id).first()
        if material is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Material not found.')
        db.delete(material)
        db.commit()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'deleting material') from exc

    logger.info('Admin %s deleted material %s', current_user.email, material_id)


@router.get('/login-history', response_model=PaginatedLoginHistoryResponse, dependencies=[Depends(require_admin)])
def list_login_history(
    email: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(LoginHistory)
        if email and email.strip():
            query = query.filter(LoginHistory.email == email.strip().lower())
        query = query.order_by(LoginHistory.created_at.desc(), LoginHistory.id.desc())
        entries, total = paginate(query, page, limit)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing login history') from exc

    return PaginatedLoginHistoryResponse(
        history=[LoginHistoryResponse.model_validate(entry) for entry in entries],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )
