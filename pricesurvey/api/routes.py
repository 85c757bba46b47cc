"""Liveness endpoint polled by field agents."""

from fastapi import APIRouter

from pricesurvey.core.config import settings

health_router = APIRouter(tags=["system"])


@health_router.get("/health", summary="Collaborator liveness")
async def healthcheck() -> dict[str, str]:
    """Agents seed their connectivity state from this call."""

    return {"status": "ok", "service": settings.app_name, "version": settings.app_version}
