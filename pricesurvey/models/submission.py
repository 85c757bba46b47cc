"""Persisted survey submissions (collaborator record store)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Submission(SQLModel, table=True):
    """One survey per outlet per day."""

    __table_args__ = (UniqueConstraint("outlet_name", "day", name="uq_submission_outlet_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_name: str = Field(max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=32)
    outlet_name: str = Field(max_length=255, index=True)
    area: str = Field(max_length=255, index=True)
    geo_lat: Optional[float] = None
    geo_lng: Optional[float] = None
    geo_accuracy: Optional[float] = None
    items_json: str = Field(description="JSON list of product lines")
    collected_at: datetime = Field(index=True)
    day: str = Field(max_length=10, description="yyyy-mm-dd derived from collected_at")
    idempotency_key: Optional[str] = Field(default=None, max_length=64, unique=True)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    platform: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


__all__ = ["Submission"]
