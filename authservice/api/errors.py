"""Exception handlers translating service errors into HTTP responses."""

import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from authservice.config import Settings
from authservice.errors import AppError, InternalError

logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle operational errors raised by the services."""
    if exc.is_operational:
        logger.warning(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc!r}", exc_info=exc)

    content = {"status": exc.status, "kind": exc.kind, "message": exc.message}
    if exc.details:
        content["details"] = exc.details

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request body validation errors as 400 ValidationError."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": " -> ".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(f"Validation error on {request.url.path}: {errors}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "status": "fail",
            "kind": "ValidationError",
            "message": "Invalid input data",
            "errors": errors,
        },
    )


def make_internal_error_handler(settings: Settings):
    """Build the catch-all handler. Only development responses carry diagnostics."""

    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc!r}", exc_info=exc
        )

        internal = InternalError()
        content = {"status": internal.status, "kind": internal.kind, "message": internal.message}
        if settings.is_development:
            content["detail"] = repr(exc)
            content["traceback"] = traceback.format_exception(exc)

        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    return internal_error_handler


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Install all exception handlers on the app."""
    internal_error_handler = make_internal_error_handler(settings)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, internal_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)
