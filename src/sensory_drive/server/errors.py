import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sensory_drive.exceptions import (
    DriveClientError,
    DatabaseError,
    StorageError,
    NotFoundError,
    InvalidRequestError,
    QuotaExceededError,
    VerificationFailedError,
    ConflictError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

# Порядок важен: первый подходящий класс определяет код ответа
ERROR_STATUS: list[tuple[type[DriveClientError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST),
    (QuotaExceededError, status.HTTP_400_BAD_REQUEST),
    (VerificationFailedError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (DatabaseError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: DriveClientError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def drive_error_handler(request: Request, exc: DriveClientError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        # Детали сбоя БД/хранилища остаются в логах, клиент видит общее сообщение
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
        return error_response(code, "Internal server error")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return error_response(code, str(exc), headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DriveClientError, drive_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
