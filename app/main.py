from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import engine, init_db
from app.core.exceptions import BookingError
from app.core.logging import setup_logging
from app.core.redis import redis_client
from app.schemas.common import ErrorResponse
from app.services.notification_service import drain_notifications

setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info(
        "Application started",
        project=settings.PROJECT_NAME,
        environment=settings.ENVIRONMENT,
    )
    yield
    # Let in-flight notifications finish before the loop goes away
    await drain_notifications()
    await redis_client.close()
    await engine.dispose()
    logger.info("Application stopped")


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(
        status=status_code, message=message, timestamp=datetime.now(timezone.utc)
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BookingError)
    async def handle_booking_error(request: Request, exc: BookingError):
        if exc.status_code >= 500:
            logger.error(
                "Booking failed", path=request.url.path, error=exc.message, exc_info=exc
            )
            return _error_response(exc.status_code, "An unexpected error occurred.")
        logger.info(
            "Booking request rejected",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
        )
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'][1:])} {error['msg']}".strip()
            for error in exc.errors()
        )
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unhandled error", path=request.url.path, exc_info=exc)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred."
        )

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": settings.VERSION}

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
