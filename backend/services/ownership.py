from fastapi import HTTPException, status
from sqlalchemy.orm import Session


def get_owned_or_404(db: Session, model, record_id: int, owner_column, owner_value: str, label: str):
    """Fetch a record matching both its id and its owner.

    A record owned by someone else is reported exactly like a missing one.
    """
    record = db.query(model).filter(
        model.id == record_id,
        owner_column == owner_value,
    ).first()
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f'{label} not found.')
    return record
