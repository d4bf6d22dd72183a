from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.models.experience import Experience

logger = logging.getLogger(__name__)


def list_experiences(db: Session) -> list[Experience]:
    return db.query(Experience).order_by(desc(Experience.start_date), desc(Experience.id)).all()


def get_experience_or_404(db: Session, experience_id: int) -> Experience:
    experience = db.query(Experience).filter(Experience.id == experience_id).first()
    if not experience:
        logger.warning("Experience not found: %d", experience_id)
        raise HTTPException(status_code=404, detail="Experience not found")
    return experience


def create_experience(db: Session, data: dict[str, Any]) -> Experience:
    experience = Experience(**data)
    db.add(experience)
    db.commit()
    db.refresh(experience)
    logger.info("Created experience %d: %s at %s", experience.id, experience.title, experience.company)
    return experience


def update_experience(db: Session, experience_id: int, updates: dict[str, Any]) -> Experience:
    experience = get_experience_or_404(db, experience_id)
    if not updates:
        return experience

    for key, value in updates.items():
        setattr(experience, key, value)

    if experience.end_date is not None and experience.end_date <= experience.start_date:
        db.rollback()
        raise HTTPException(status_code=400, detail="end_date must be after start_date")

    db.commit()
    db.refresh(experience)
    logger.info("Updated experience %d", experience_id)
    return experience


def delete_experience(db: Session, experience_id: int) -> None:
    experience = get_experience_or_404(db, experience_id)
    db.delete(experience)
    db.commit()
    logger.info("Deleted experience %d", experience_id)
