"""SQLModel session management for the collaborator record store."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from pricesurvey.core.config import settings
from pricesurvey.models import Submission


def build_engine(url: str) -> Engine:
    """Create an engine, letting SQLite connections cross threads."""

    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(settings.database_url)


def init_db(bind: Engine | None = None) -> None:
    SQLModel.metadata.create_all(bind or engine, tables=[Submission.__table__])


@contextmanager
def get_session() -> Iterator[Session]:
    """Get a database session as a context manager (for use with 'with' statement)."""
    session = Session(engine)
    try:
        yield session
    finally:
        session.close()
