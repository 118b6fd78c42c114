"""FastAPI application entry point."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ssekit.core.config import settings
from ssekit.core.exceptions import SSEKitError

logger = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # -- Exception handlers --
    @app.exception_handler(SSEKitError)
    async def ssekit_error_handler(_request: Request, exc: SSEKitError) -> JSONResponse:
        logger.warning("request_failed", code=exc.code, message=exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "code": exc.code,
                "message": exc.message,
                "detail": exc.detail,
            },
        )

    # -- Routes --
    from ssekit.api.routes.health import router as health_router
    from ssekit.api.routes.streams import router as streams_router

    app.include_router(health_router)
    app.include_router(streams_router)

    return app


app = create_app()
