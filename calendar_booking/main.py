from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from calendar_booking.api.router import api_router
from calendar_booking.core.config import get_settings
from calendar_booking.schemas.booking import ErrorResponse
from calendar_booking.services.errors import BookingError, ProviderUnavailable

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_application() -> FastAPI:
    settings = get_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)
    app.add_exception_handler(BookingError, _handle_booking_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation_error)

    return app


def _handle_booking_error(request: Request, exc: BookingError) -> JSONResponse:
    if isinstance(exc, ProviderUnavailable):
        logger.error("Provider failure path=%s error=%s", request.url.path, exc.message)
    else:
        logger.info("Request rejected path=%s error=%s", request.url.path, exc.message)
    content = ErrorResponse(error=exc.message, details=exc.details or None)
    return JSONResponse(status_code=exc.status_code, content=content.model_dump(exclude_none=True))


def _handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = [
        f"{'.'.join(str(part) for part in error['loc'][1:])}: {error['msg']}"
        for error in exc.errors()
    ]
    content = ErrorResponse(error="Invalid request.", details="; ".join(messages))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content.model_dump())


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info(
        "Calendar booking service starting auth_mode=%s session_store=%s",
        settings.auth_mode,
        settings.session_store,
    )
    yield


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("calendar_booking.main:app", host=settings.host, port=settings.port)


app = create_application()
