# app/routes/auth.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.rate_limit import limiter
from app.schemas.auth import AuthOut, LoginIn, MessageOut, UserOut
from app.services.auth_sessions import (
    AuthError,
    InvalidCredentials,
    clear_session_cookie,
    login as login_user,
    logout as logout_session,
    read_session_cookie,
    set_session_cookie,
    validate_session,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _maybe_limit(rule: str):
    if not settings.ENABLE_RATE_LIMITING:
        def passthrough(fn):
            return fn
        return passthrough
    return limiter.limit(rule)


@router.post("/login", response_model=AuthOut)
@_maybe_limit("5/minute")
def login(request: Request, payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    try:
        session = login_user(db, payload.email, payload.password)
    except InvalidCredentials:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    set_session_cookie(response, session.id)
    return {"user": session.user, "message": "Login successful"}


@router.get("/me", response_model=UserOut)
def me(request: Request, response: Response, db: Session = Depends(get_db)):
    session_id = read_session_cookie(request)
    if not session_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        session = validate_session(db, session_id)
    except AuthError:
        # Clear the stale cookie along with the 401.
        raise HTTPException(
            status_code=401,
            detail="Session expired or invalid",
            headers={"set-cookie": _expired_cookie_header()},
        )

    return session.user


@router.post("/logout", response_model=MessageOut)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    session_id = read_session_cookie(request)
    if not session_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    logout_session(db, session_id)
    clear_session_cookie(response)
    return {"message": "Logout successful"}


def _expired_cookie_header() -> str:
    scratch = Response()
    clear_session_cookie(scratch)
    return scratch.headers["set-cookie"]
