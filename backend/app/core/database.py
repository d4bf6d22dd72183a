from typing import Any, Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from app.core.base import Base


class Database:
    """
    Owns the engine and session factory for one process.

    Built by the composition root (app.main.create_app) and handed down; nothing in
    the app reaches for a module-level engine.
    """

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        connect_args = dict(engine_kwargs.pop("connect_args", {}) or {})
        if url.startswith("sqlite"):
            # Upload workers use their own sessions from other threads.
            connect_args.setdefault("check_same_thread", False)

        self.url = url
        self.engine = create_engine(
            url,
            pool_pre_ping=True,  # checks stale connections
            connect_args=connect_args,
            **engine_kwargs,
        )
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    database: Database = request.app.state.database
    db = database.session_factory()
    try:
        yield db
    finally:
        db.close()
