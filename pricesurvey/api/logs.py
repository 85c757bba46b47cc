"""Recent log lines for operators."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from pricesurvey.core.logging_config import get_log_buffer

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("")
def list_logs(
    limit: int = Query(100, ge=1, le=200),
    level: Optional[str] = Query(default=None, description="Minimum level, e.g. WARNING"),
) -> dict[str, list[dict[str, str]]]:
    return {"logs": get_log_buffer(limit=limit, level=level)}


__all__ = ["router"]
