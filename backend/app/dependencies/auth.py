# app/dependencies/auth.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.user import User
from app.services.auth_sessions import AuthError, read_session_cookie, validate_session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Validates:
      - session cookie present
      - session exists and has not expired
      - owning user is active
    Returns:
      - User SQLAlchemy model
    """
    session_id = read_session_cookie(request)
    if not session_id:
        raise _unauthorized("Authentication required")

    try:
        session = validate_session(db, session_id)
    except AuthError:
        raise _unauthorized("Invalid or expired session")

    user = session.user
    if not user or not getattr(user, "is_active", True):
        raise _unauthorized("Invalid or expired session")

    request.state.user = user
    return user
