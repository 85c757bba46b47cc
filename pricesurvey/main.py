"""FastAPI collaborator service: stores surveys and answers verify checks."""

from __future__ import annotations

import argparse
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pricesurvey.api import api_router
from pricesurvey.core.config import settings
from pricesurvey.core.logging_config import setup_logging
from pricesurvey.db.session import init_db

logger = logging.getLogger(__name__)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
    logger.info("Rejected payload on %s: %s", request.url.path, errors)
    return JSONResponse(
        {"ok": False, "code": "VALIDATION_ERROR", "errors": errors},
        status_code=400,
    )


def create_app() -> FastAPI:
    setup_logging("price-survey-api")
    logger.info("Initializing %s API", settings.app_name)

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.include_router(api_router, prefix=settings.api_prefix)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {
            "message": (
                f"{settings.app_name} API is online. Try GET "
                f"{settings.api_prefix}/health for a health check."
            )
        }

    @app.on_event("startup")
    def _bootstrap() -> None:
        init_db()

    return app


def main() -> int:
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the price survey collaborator API.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()
    uvicorn.run("pricesurvey.main:create_app", factory=True, host=args.host, port=args.port, reload=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
