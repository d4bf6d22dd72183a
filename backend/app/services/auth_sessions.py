from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Request, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import generate_session_id, verify_password
from app.models.auth_session import AuthSession
from app.models.user import User

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


class InvalidCredentials(AuthError):
    def __init__(self) -> None:
        super().__init__("invalid email or password")


class SessionNotFound(AuthError):
    def __init__(self) -> None:
        super().__init__("session not found")


class SessionExpired(AuthError):
    def __init__(self) -> None:
        super().__init__("session has expired")


# -----------------------------
# Session lifecycle
# -----------------------------
def session_duration() -> timedelta:
    return timedelta(hours=int(getattr(settings, "SESSION_DURATION_HOURS", 2)))


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _is_expired(expires_at: datetime, now: datetime) -> bool:
    # SQLite may round-trip tz-aware datetimes as naive. Compare consistently.
    if expires_at.tzinfo is None:
        now = now.replace(tzinfo=None)
    return expires_at <= now


def login(db: Session, email: str, password: str) -> AuthSession:
    normalized = (email or "").strip().lower()
    user = db.query(User).filter(User.email == normalized).first()
    if not user or not user.is_active:
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        raise InvalidCredentials()

    cleanup_expired_sessions(db)

    session = AuthSession(
        id=generate_session_id(),
        user_id=user.id,
        expires_at=_now_utc() + session_duration(),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("User %d logged in", user.id)
    return session


def validate_session(db: Session, session_id: str) -> AuthSession:
    session = db.query(AuthSession).filter(AuthSession.id == session_id).first()
    if not session:
        raise SessionNotFound()

    if _is_expired(session.expires_at, _now_utc()):
        db.delete(session)
        db.commit()
        raise SessionExpired()

    return session


def logout(db: Session, session_id: str) -> None:
    deleted = db.query(AuthSession).filter(AuthSession.id == session_id).delete()
    db.commit()
    if not deleted:
        logger.warning("Logout for unknown session")


def cleanup_expired_sessions(db: Session) -> int:
    removed = (
        db.query(AuthSession)
        .filter(AuthSession.expires_at <= _now_utc())
        .delete(synchronize_session=False)
    )
    db.commit()
    if removed:
        logger.info("Removed %d expired sessions", removed)
    return removed


# -----------------------------
# Cookie helpers
# -----------------------------
def cookie_name() -> str:
    return str(getattr(settings, "SESSION_COOKIE_NAME", "session_id")).strip() or "session_id"


def cookie_samesite() -> str:
    v = str(getattr(settings, "COOKIE_SAMESITE", "lax")).lower().strip()
    if v not in {"lax", "strict", "none"}:
        return "lax"
    return v


def cookie_secure() -> bool:
    # SameSite=None is rejected by browsers unless the cookie is also Secure.
    return bool(settings.COOKIE_SECURE) or settings.is_prod or cookie_samesite() == "none"


def set_session_cookie(resp: Response, session_id: str) -> None:
    resp.set_cookie(
        key=cookie_name(),
        value=session_id,
        httponly=True,
        secure=cookie_secure(),
        samesite=cookie_samesite(),
        max_age=int(session_duration().total_seconds()),
        path="/",
        domain=settings.COOKIE_DOMAIN,
    )


def clear_session_cookie(resp: Response) -> None:
    resp.delete_cookie(
        key=cookie_name(),
        path="/",
        domain=settings.COOKIE_DOMAIN,
    )


def read_session_cookie(req: Request) -> str | None:
    val = req.cookies.get(cookie_name())
    if not val:
        return None
    val = val.strip()
    return val or None
