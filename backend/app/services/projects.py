from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.models.project import Project

logger = logging.getLogger(__name__)


def list_projects(db: Session) -> list[Project]:
    return db.query(Project).order_by(desc(Project.start_date), desc(Project.id)).all()


def get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        logger.warning("Project not found: %d", project_id)
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def create_project(db: Session, data: dict[str, Any]) -> Project:
    project = Project(**data)
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Created project %d: %s", project.id, project.name)
    return project


def update_project(db: Session, project_id: int, updates: dict[str, Any]) -> Project:
    project = get_project_or_404(db, project_id)
    if not updates:
        return project

    for key, value in updates.items():
        setattr(project, key, value)

    if project.end_date is not None and project.end_date <= project.start_date:
        db.rollback()
        raise HTTPException(status_code=400, detail="end_date must be after start_date")

    db.commit()
    db.refresh(project)
    logger.info("Updated project %d", project_id)
    return project


def delete_project(db: Session, project_id: int) -> None:
    project = get_project_or_404(db, project_id)
    db.delete(project)
    db.commit()
    logger.info("Deleted project %d", project_id)
