from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies.auth import get_current_user
from app.schemas.auth import MessageOut
from app.schemas.experience import ExperienceCreate, ExperienceOut, ExperienceUpdate
from app.services.experiences import (
    create_experience,
    delete_experience,
    get_experience_or_404,
    list_experiences,
    update_experience,
)

router = APIRouter(prefix="/api/v1/experiences", tags=["experiences"])

# Columns that may be set back to NULL through PATCH
CLEARABLE_FIELDS = {"url", "location", "end_date", "description"}


@router.get("", response_model=list[ExperienceOut])
def get_all_experiences(db: Session = Depends(get_db)):
    return list_experiences(db)


@router.get("/{experience_id}", response_model=ExperienceOut)
def get_experience(experience_id: int, db: Session = Depends(get_db)):
    return get_experience_or_404(db, experience_id)


@router.post(
    "",
    response_model=ExperienceOut,
    status_code=201,
    dependencies=[Depends(get_current_user)],
)
def create(payload: ExperienceCreate, db: Session = Depends(get_db)):
    return create_experience(db, payload.model_dump())


@router.patch(
    "/{experience_id}",
    response_model=ExperienceOut,
    dependencies=[Depends(get_current_user)],
)
def update(experience_id: int, payload: ExperienceUpdate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude_unset=True)
    updates = {k: v for k, v in data.items() if v is not None or k in CLEARABLE_FIELDS}
    return update_experience(db, experience_id, updates)


@router.delete(
    "/{experience_id}",
    response_model=MessageOut,
    dependencies=[Depends(get_current_user)],
)
def delete(experience_id: int, db: Session = Depends(get_db)):
    delete_experience(db, experience_id)
    return {"message": "Experience deleted successfully"}
