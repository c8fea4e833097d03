"""mailcapture Admin API - FastAPI application.

Read-only HTTP access to captured mail:
- Weekly message listings and stored artifacts
- Health and Prometheus metrics

Every route requires the shared API key.
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from .auth.dependencies import AccessDeniedError, require_api_key
from .config import Settings
from .infrastructure.storage.recipient_store import RecipientStore
from .infrastructure.storage.weekly_index import WeeklyIndexManager
from .mail.router import router as mail_router
from .mail.service import MailReader
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings, reader: Optional[MailReader] = None) -> FastAPI:
    """Application factory.

    Args:
        settings: Service settings (API key, mail root, API prefix)
        reader: Mail reader to serve from; built from settings when omitted

    Returns:
        FastAPI: Configured application
    """
    if reader is None:
        reader = MailReader(
            store=RecipientStore(settings.MAIL_ROOT),
            index_manager=WeeklyIndexManager(settings.MAIL_ROOT),
            api_prefix=settings.API_PREFIX,
        )

    app = FastAPI(
        title="mailcapture Admin API",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        dependencies=[Depends(require_api_key)],
    )
    app.state.settings = settings
    app.state.mail_reader = reader

    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(AccessDeniedError)
    async def access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": "Access denied"},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled errors, return a generic 500 without details."""
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}",
            exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal Server Error"},
        )

    app.include_router(observability_router)
    app.include_router(mail_router, prefix=settings.API_PREFIX)

    return app
