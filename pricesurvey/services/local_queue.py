"""Durable local queue of submissions waiting for delivery."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, func, select

from pricesurvey.core.config import settings
from pricesurvey.core.errors import QueueStorageError
from pricesurvey.db.session import build_engine
from pricesurvey.models import PendingSubmission, QueuedSubmission, SubmissionDraft

logger = logging.getLogger(__name__)


class QueueBackend(Protocol):
    """Key-value persistence keyed by pending id."""

    def add(self, record: PendingSubmission) -> None: ...

    def delete(self, pending_id: str) -> None: ...

    def get(self, pending_id: str) -> PendingSubmission | None: ...

    def all(self) -> list[PendingSubmission]: ...

    def count(self) -> int: ...

    def replace(self, record: PendingSubmission) -> bool: ...


class SqlQueueBackend:
    """SQLModel-backed store, SQLite on the device by default."""

    def __init__(self, engine: Engine | None = None, url: str | None = None) -> None:
        self.engine = engine or build_engine(url or settings.queue_database_url)
        try:
            SQLModel.metadata.create_all(self.engine, tables=[QueuedSubmission.__table__])
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Unable to open local queue: {exc}") from exc

    @staticmethod
    def _to_row(record: PendingSubmission) -> QueuedSubmission:
        return QueuedSubmission(
            id=record.id,
            enqueued_at=record.enqueued_at,
            retry_count=record.retry_count,
            outlet_name=record.outlet_name,
            payload=record.model_dump_json(),
        )

    @staticmethod
    def _from_row(row: QueuedSubmission) -> PendingSubmission:
        return PendingSubmission.model_validate_json(row.payload)

    def add(self, record: PendingSubmission) -> None:
        try:
            with Session(self.engine) as session:
                row = self._to_row(record)
                last = session.exec(select(func.max(QueuedSubmission.seq))).one()
                row.seq = (last or 0) + 1
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Failed to store submission {record.id}: {exc}") from exc

    def delete(self, pending_id: str) -> None:
        try:
            with Session(self.engine) as session:
                row = session.get(QueuedSubmission, pending_id)
                if row is None:
                    return
                session.delete(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Failed to remove submission {pending_id}: {exc}") from exc

    def get(self, pending_id: str) -> PendingSubmission | None:
        try:
            with Session(self.engine) as session:
                row = session.get(QueuedSubmission, pending_id)
                return self._from_row(row) if row else None
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Failed to read submission {pending_id}: {exc}") from exc

    def all(self) -> list[PendingSubmission]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(QueuedSubmission).order_by(QueuedSubmission.seq)
                ).all()
                return [self._from_row(row) for row in rows]
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Failed to list queued submissions: {exc}") from exc

    def count(self) -> int:
        try:
            with Session(self.engine) as session:
                return session.exec(select(func.count()).select_from(QueuedSubmission)).one()
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Failed to count queued submissions: {exc}") from exc

    def replace(self, record: PendingSubmission) -> bool:
        try:
            with Session(self.engine) as session:
                row = session.get(QueuedSubmission, record.id)
                if row is None:
                    return False
                fresh = self._to_row(record)
                row.retry_count = fresh.retry_count
                row.outlet_name = fresh.outlet_name
                row.payload = fresh.payload
                session.add(row)
                session.commit()
                return True
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Failed to update submission {record.id}: {exc}") from exc


class LocalQueue:
    """Pending submissions owned by this device, surviving restarts."""

    def __init__(self, backend: QueueBackend | None = None) -> None:
        self.backend = backend or SqlQueueBackend()

    async def enqueue(self, draft: SubmissionDraft, pending_id: str | None = None) -> str:
        """Persist a draft and return its pending id. Storage errors propagate."""
        record = PendingSubmission.from_draft(draft, pending_id=pending_id)
        self.backend.add(record)
        logger.info("Queued submission %s for outlet %s", record.id, record.outlet_name)
        return record.id

    async def remove(self, pending_id: str) -> None:
        self.backend.delete(pending_id)

    async def get(self, pending_id: str) -> PendingSubmission | None:
        return self.backend.get(pending_id)

    async def list_all(self) -> list[PendingSubmission]:
        return self.backend.all()

    async def count(self) -> int:
        return self.backend.count()

    async def update(self, pending_id: str, record: PendingSubmission) -> None:
        if record.id != pending_id:
            record = record.model_copy(update={"id": pending_id})
        if not self.backend.replace(record):
            logger.debug("Skipped update for %s: no longer queued", pending_id)


__all__ = ["LocalQueue", "QueueBackend", "SqlQueueBackend"]
