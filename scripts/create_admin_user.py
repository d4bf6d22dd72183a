"""
Create (or reset the password of) the admin account for the portfolio backend.

There is no sign-up endpoint; this is the only way a user row comes to exist.

Usage (from the repo root):
  python scripts/create_admin_user.py --email admin@example.com
  python scripts/create_admin_user.py --email admin@example.com --reset-password

The password is read from ADMIN_PASSWORD if set, otherwise prompted for.
"""

from __future__ import annotations

import argparse
import getpass
import os
from pathlib import Path
import sys


# Allow `import app.*` from backend/
REPO_ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(BACKEND_DIR))


from app.core.config import settings  # noqa: E402
from app.core.database import Database  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.models.auth_session import AuthSession  # noqa: E402
from app.models.user import User  # noqa: E402

MIN_PASSWORD_LENGTH = 8


def read_password() -> str:
    env_password = os.getenv("ADMIN_PASSWORD")
    if env_password:
        return env_password

    password = getpass.getpass("Password: ")
    confirm = getpass.getpass("Confirm password: ")
    if password != confirm:
        raise SystemExit("Passwords do not match.")
    return password


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the portfolio admin user.")
    parser.add_argument("--email", required=True, help="Login email for the admin user.")
    parser.add_argument(
        "--reset-password",
        action="store_true",
        help="Replace the password of an existing user and drop their sessions.",
    )
    args = parser.parse_args()

    email = args.email.strip().lower()
    password = read_password()
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Refusing: password must be at least {MIN_PASSWORD_LENGTH} characters.")
        return 2

    database = Database(settings.database_url)
    if database.is_sqlite:
        database.create_all()

    try:
        with database.session_factory() as db:
            user = db.query(User).filter(User.email == email).first()
            if user and not args.reset_password:
                print(f"User {email} already exists (use --reset-password to change it).")
                return 1

            if user:
                user.password_hash = hash_password(password)
                db.query(AuthSession).filter(AuthSession.user_id == user.id).delete(synchronize_session=False)
                action = "Updated"
            else:
                user = User(email=email, password_hash=hash_password(password), is_active=True)
                db.add(user)
                action = "Created"

            db.commit()
            print(f"{action} admin user {email} (id={user.id}).")
    finally:
        database.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
