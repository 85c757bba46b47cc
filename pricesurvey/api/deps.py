"""Request-scoped dependencies."""

from __future__ import annotations

from typing import Iterator

from sqlmodel import Session

from pricesurvey.db.session import get_session


def get_db() -> Iterator[Session]:
    """One record-store session per request."""
    with get_session() as session:
        yield session
