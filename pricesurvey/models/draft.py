"""Survey payload schemas shared by the agent and the collaborator service."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PHONE_PATTERN = re.compile(r"^0[0-9]{10}$")


class Product(str, Enum):
    SBC = "SBC 40cl"
    NBC = "NBC 40cl"
    RC_COLA = "RC Cola 40cl"
    POP_COLA = "Pop Cola 40cl"
    BIGI = "Bigi 40cl"


PRODUCTS: tuple[str, ...] = tuple(p.value for p in Product)


def local_now() -> datetime:
    return datetime.now().astimezone()


def submission_day(collected_at: datetime) -> str:
    """Calendar day of a collection in the timezone it was recorded in."""
    return collected_at.date().isoformat()


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ProductLine(_WireModel):
    product_name: Product
    buy_price: float = Field(gt=0, description="Buy price must be greater than 0")
    sell_price: float = Field(gt=0, description="Sell price must be greater than 0")


class GeoFix(_WireModel):
    lat: float
    lng: float
    accuracy: Optional[float] = None


class SubmissionDraft(_WireModel):
    """A survey as authored by the field agent."""

    customer_name: str = Field(min_length=2)
    customer_phone: Optional[str] = None
    outlet_name: str = Field(min_length=2)
    area: str = Field(min_length=2)
    items: list[ProductLine] = Field(min_length=1)
    geo: Optional[GeoFix] = None
    collected_at: datetime = Field(default_factory=local_now)

    @field_validator("customer_phone", mode="before")
    @classmethod
    def _check_phone(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        if not value:
            return None
        if not PHONE_PATTERN.match(value):
            raise ValueError("Invalid phone number")
        return value

    @field_validator("collected_at")
    @classmethod
    def _attach_timezone(cls, value: datetime) -> datetime:
        # Naive timestamps are wall-clock time on this device
        if value.tzinfo is None:
            return value.astimezone()
        return value

    @property
    def day(self) -> str:
        return submission_day(self.collected_at)

    def to_payload(self) -> dict[str, Any]:
        """Wire body for the create endpoint."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            include=set(SubmissionDraft.model_fields),
        )


__all__ = [
    "GeoFix",
    "PHONE_PATTERN",
    "PRODUCTS",
    "Product",
    "ProductLine",
    "SubmissionDraft",
    "local_now",
    "submission_day",
]
