"""FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.v1 import api_router
from core import configure_logging, settings
from services import AccountError, AssetStore, MinioAssetStore

logger = logging.getLogger(__name__)


async def _account_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, AccountError):  # pragma: no cover - registered for AccountError only
        raise exc
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path},
            exc_info=exc,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app(asset_store: AssetStore | None = None) -> FastAPI:
    """Build the application with its process-wide asset store."""
    configure_logging(settings.log_level)

    application = FastAPI(title="VideoTube API")
    application.state.asset_store = asset_store or MinioAssetStore()

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(AccountError, _account_error_handler)
    application.include_router(api_router)

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return application
