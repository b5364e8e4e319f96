import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_token_email, require_tutor
from backend.core.errors import store_failure
from backend.database import get_db
from backend.models.material import Material
from backend.models.study_session import StudySession
from backend.models.user import User
from backend.schemas.session_schema import MaterialResponse
from backend.services.ownership import get_owned_or_404

logger = logging.getLogger(__name__)

router = APIRouter(tags=['materials'])


class CreateMaterialRequest(BaseModel):
    title: str
    session_id: int
    link: str | None = None
    image_url: str | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title is required.')
        return normalized


class UpdateMaterialRequest(BaseModel):
    title: str | None = None
    link: str | None = None
    image_url: str | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title cannot be blank.')
        return normalized


@router.post('', response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
def create_material(
    data: CreateMaterialRequest,
    current_user: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    try:
        get_owned_or_404(db, StudySession, data.session_id, StudySession.tutor_email, current_user.email, 'Session')

        material = Material(
            title=data.title,
            session_id=data.session_id,
            tutor_email=current_user.email,
            link=data.link,
            image_url=data.image_url,
        )
        db.add(material)
        db.commit()
        db.refresh(material)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'creating material') from exc

    logger.info('Tutor %s added material %s to session %s', current_user.email, material.id, material.session_id)
    return material


@router.get('/mine', response_model=list[MaterialResponse])
def list_my_materials(
    current_user: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    try:
        return db.query(Material).filter(
            Material.tutor_email == current_user.email,
        ).order_by(Material.created_at.desc(), Material.id.desc()).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing tutor materials') from exc


@router.get('/session/{session_id}', response_model=list[MaterialResponse], dependencies=[Depends(get_token_email)])
def list_session_materials(
    session_id: int,
    db: Session = Depends(get_db),
):
    try:
        return db.query(Material).filter(
            Material.session_id == session_id,
        ).order_by(Material.created_at.desc(), Material.id.desc()).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'listing session materials') from exc


@router.patch('/{material_id}', response_model=MaterialResponse)
def update_material(
    material_id: int,
    data: UpdateMaterialRequest,
    current_user: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    try:
        material = get_owned_or_404(db, Material, material_id, Material.tutor_email, current_user.email, 'Material')
        for field, value in data.model_dump(exclude_none=True).items():
            setattr(material, field, value)
        db.commit()
        db.refresh(material)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'updating material') from exc

    return material


@router.delete('/{material_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_material(
    material_id: int,
    current_user: User = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    try:
        deleted = db.query(Material).filter(
            Material.id == material_id,
            Material.tutor_email == current_user.email,
        ).delete(synchronize_session=False)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Material not found.')
        db.commit()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, 'deleting material') from exc
