"""Local queue models."""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone

from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from .draft import SubmissionDraft


def new_pending_id() -> str:
    """Timestamp plus random suffix, unique per device."""
    return f"pending_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class PendingSubmission(SubmissionDraft):
    """A draft waiting in the local queue."""

    id: str
    enqueued_at: datetime = PydanticField(default_factory=lambda: datetime.now(timezone.utc))
    retry_count: int = PydanticField(default=0, ge=0)

    @classmethod
    def from_draft(cls, draft: SubmissionDraft, pending_id: str | None = None) -> "PendingSubmission":
        return cls(id=pending_id or new_pending_id(), **draft.model_dump())

    def with_retry(self) -> "PendingSubmission":
        return self.model_copy(update={"retry_count": self.retry_count + 1})


class QueuedSubmission(SQLModel, table=True):
    """Row stored by the SQL queue backend."""

    __tablename__ = "pending_submission"

    id: str = Field(primary_key=True, max_length=64)
    seq: int = Field(default=0, index=True, nullable=False, description="Insertion order")
    enqueued_at: datetime = Field(index=True, nullable=False)
    retry_count: int = Field(default=0, nullable=False)
    outlet_name: str = Field(max_length=255, description="Copied from the payload for inspection")
    payload: str = Field(description="JSON-encoded PendingSubmission")


__all__ = ["PendingSubmission", "QueuedSubmission", "new_pending_id"]
