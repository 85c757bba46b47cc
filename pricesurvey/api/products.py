"""Closed product catalogue."""

from __future__ import annotations

from fastapi import APIRouter

from pricesurvey.models import PRODUCTS

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products() -> dict[str, list[str]]:
    return {"items": list(PRODUCTS)}


__all__ = ["router"]
