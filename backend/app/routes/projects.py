from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies.auth import get_current_user
from app.schemas.auth import MessageOut
from app.schemas.project import ProjectCreate, ProjectOut, ProjectUpdate
from app.services.projects import (
    create_project,
    delete_project,
    get_project_or_404,
    list_projects,
    update_project,
)

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])

CLEARABLE_FIELDS = {"url", "end_date", "technologies"}


@router.get("", response_model=list[ProjectOut])
def get_all_projects(db: Session = Depends(get_db)):
    return list_projects(db)


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: int, db: Session = Depends(get_db)):
    return get_project_or_404(db, project_id)


@router.post(
    "",
    response_model=ProjectOut,
    status_code=201,
    dependencies=[Depends(get_current_user)],
)
def create(payload: ProjectCreate, db: Session = Depends(get_db)):
    return create_project(db, payload.model_dump())


@router.patch(
    "/{project_id}",
    response_model=ProjectOut,
    dependencies=[Depends(get_current_user)],
)
def update(project_id: int, payload: ProjectUpdate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude_unset=True)
    updates = {k: v for k, v in data.items() if v is not None or k in CLEARABLE_FIELDS}
    return update_project(db, project_id, updates)


@router.delete(
    "/{project_id}",
    response_model=MessageOut,
    dependencies=[Depends(get_current_user)],
)
def delete(project_id: int, db: Session = Depends(get_db)):
    delete_project(db, project_id)
    return {"message": "Project deleted successfully"}
