"""Database connection and session management.

This module handles the database connection using SQLAlchemy. A single
``Database`` is created at startup and stored on the application state;
request handlers receive sessions from it through ``get_db``.
"""

from pathlib import Path

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models.base import Base
# Import models to ensure they are registered with Base.metadata
import models  # noqa: F401


class Database:
    """Owns the engine and session factory for one database URL."""

    def __init__(self, url: str):
        self.url = url
        parsed = make_url(url)
        engine_kwargs = {}
        if parsed.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if parsed.database in (None, "", ":memory:"):
                # Share the single in-memory database across sessions
                engine_kwargs["poolclass"] = StaticPool
            else:
                Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

    def init_db(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request):
    """Dependency for getting a database session."""
    db = request.app.state.database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
