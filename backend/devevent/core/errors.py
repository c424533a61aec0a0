"""
Application error taxonomy.

Services raise these; the exception handlers registered in main.py turn
them into `{"error": code, "message": message}` responses with the status
code of the error kind. Nothing beyond the message reaches the caller.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from devevent.core.logging import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "app_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AppError):
    """Required configuration (connection string, media bucket) is missing."""

    code = "configuration_error"


class DatabaseConnectionError(AppError, ConnectionError):
    """The database could not be reached. Safe to retry the whole request."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "connection_error"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class UploadError(AppError):
    """The media service rejected or failed the upload."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upload_error"


def error_payload(code: str, message: str) -> dict:
    return {"error": code, "message": message}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("request_rejected", error_code=exc.code, status_code=exc.status_code, reason=exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc.code, exc.message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload("internal_error", "Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
