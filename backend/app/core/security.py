# app/core/security.py
from __future__ import annotations

import uuid

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


# -------------------------
# Session ids
# -------------------------
def generate_session_id() -> str:
    """
    Opaque id stored in the session cookie and as the sessions.id primary key.
    """
    return str(uuid.uuid4())
