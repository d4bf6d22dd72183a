from __future__ import annotations

import contextlib
import threading
from datetime import datetime, timezone
from typing import Any, Iterator, Protocol

from sqlalchemy import desc
from sqlalchemy.orm import Session, sessionmaker

from app.models.certification import Certification

UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "issuer",
        "issue_date",
        "expiry_date",
        "credential_id",
        "credential_url",
        "description",
    }
)


class CertificationNotFound(LookupError):
    def __init__(self, certification_id: int) -> None:
        super().__init__(f"certification {certification_id} not found")
        self.certification_id = certification_id


class CertificationRepository(Protocol):
    def create(self, certification: Certification) -> None:
        ...

    def find_all(self) -> list[Certification]:
        ...

    def find_by_id(self, certification_id: int) -> Certification:
        ...

    def update(self, certification_id: int, updates: dict[str, Any]) -> None:
        ...

    def delete(self, certification_id: int) -> None:
        ...


class SqlAlchemyCertificationRepository:
    """
    Opens a short-lived session per call, so one instance can be shared by the upload
    workers. Returned instances are detached with their columns loaded.

    SQLite has a single writer, so on SQLite every call is serialized through a lock.
    """

    def __init__(self, session_factory: sessionmaker, *, serialize: bool = False) -> None:
        self._session_factory = session_factory
        self._lock = threading.Lock() if serialize else None

    @contextlib.contextmanager
    def _session(self) -> Iterator[Session]:
        guard = self._lock if self._lock is not None else contextlib.nullcontext()
        with guard:
            db = self._session_factory()
            try:
                yield db
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    @staticmethod
    def _live(db: Session):
        return db.query(Certification).filter(Certification.deleted_at.is_(None))

    def create(self, certification: Certification) -> None:
        with self._session() as db:
            db.add(certification)
            db.commit()
            db.refresh(certification)

    def find_all(self) -> list[Certification]:
        with self._session() as db:
            return (
                self._live(db)
                .order_by(desc(Certification.issue_date), desc(Certification.id))
                .all()
            )

    def find_by_id(self, certification_id: int) -> Certification:
        with self._session() as db:
            cert = self._live(db).filter(Certification.id == certification_id).first()
            if cert is None:
                raise CertificationNotFound(certification_id)
            return cert

    def update(self, certification_id: int, updates: dict[str, Any]) -> None:
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update fields: {', '.join(sorted(unknown))}")

        with self._session() as db:
            cert = self._live(db).filter(Certification.id == certification_id).first()
            if cert is None:
                raise CertificationNotFound(certification_id)
            for key, value in updates.items():
                setattr(cert, key, value)
            db.commit()

    def delete(self, certification_id: int) -> None:
        with self._session() as db:
            cert = self._live(db).filter(Certification.id == certification_id).first()
            if cert is None:
                raise CertificationNotFound(certification_id)
            cert.deleted_at = datetime.now(timezone.utc)
            db.commit()
