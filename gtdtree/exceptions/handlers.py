"""
Exception handlers for the application.
"""
import sqlite3
import logging
from typing import Dict, Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gtdtree.exceptions import (
    NotFoundError,
    InvalidRelationError,
    TypeMismatchError,
    ConfigurationMissingError,
    StorageUnavailableError,
)
from gtdtree.monitoring import get_request_id

logger = logging.getLogger(__name__)

STORAGE_RETRY_AFTER_SECONDS = 5


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    detail: str,
    extra: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    request_id = get_request_id() or '-'
    content = {
        "error": error,
        "detail": detail,
        "path": request.url.path,
        "method": request.method,
        "request_id": request_id,
    }
    if extra:
        content.update(extra)
    response = JSONResponse(status_code=status_code, content=content, headers=headers)
    # Add request ID to headers if available
    if request_id != '-':
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Trace-ID"] = request_id
    return response


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info(f"Not found in {request.method} {request.url.path}: {exc}")
    return _error_response(
        request, 404, "not_found", str(exc),
        extra={"entity": exc.entity, "entity_id": exc.entity_id},
    )


async def invalid_relation_handler(request: Request, exc: InvalidRelationError) -> JSONResponse:
    logger.warning(f"Invalid relation in {request.method} {request.url.path}: {exc}")
    extra = {}
    if exc.expected is not None:
        extra = {"expected": exc.expected, "actual": exc.actual}
    return _error_response(request, 409, "invalid_relation", str(exc), extra=extra)


async def type_mismatch_handler(request: Request, exc: TypeMismatchError) -> JSONResponse:
    logger.warning(f"Type mismatch in {request.method} {request.url.path}: {exc}")
    return _error_response(
        request, 422, "type_mismatch", str(exc),
        extra={"item_type": exc.item_type, "required_type": exc.required_type},
    )


async def configuration_missing_handler(request: Request, exc: ConfigurationMissingError) -> JSONResponse:
    logger.error(f"Configuration missing for {request.method} {request.url.path}: {exc}")
    return _error_response(request, 500, "configuration_missing", str(exc), extra={"missing": exc.name})


async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError) -> JSONResponse:
    logger.error(
        f"Storage unavailable in {request.method} {request.url.path}: {exc}",
        extra={"request_id": get_request_id() or '-', "exception_type": type(exc.__cause__).__name__},
    )
    return _error_response(
        request, 503, "storage_unavailable",
        "The database is temporarily unavailable. Please retry.",
        headers={"Retry-After": str(STORAGE_RETRY_AFTER_SECONDS)},
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    logger.warning(f"Bad request in {request.method} {request.url.path}: {exc}")
    return _error_response(request, 400, "bad_request", str(exc))


async def sqlite_exception_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    """
    Handler for SQLite errors that are not availability problems.
    """
    logger.error(
        f"Database error in {request.method} {request.url.path}: {exc}",
        exc_info=True,
        extra={
            "request_id": get_request_id() or '-',
            "method": request.method,
            "path": request.url.path,
            "error_type": type(exc).__name__,
        }
    )
    return _error_response(
        request, 500, "Database error",
        "A database operation failed. Please try again or contact support if the issue persists.",
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request validation errors with clear messages.
    """
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        msg = error["msg"]
        errors.append(f"{field}: {msg}")

    logger.warning(
        f"Validation error in {request.method} {request.url.path}: {', '.join(errors)}",
        extra={
            "request_id": get_request_id() or '-',
            "method": request.method,
            "path": request.url.path,
            "errors": errors,
        }
    )
    return _error_response(
        request, 422, "Validation error", "One or more fields failed validation",
        extra={"errors": errors},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.
    """
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
        exc_info=True,
        extra={
            "request_id": get_request_id() or '-',
            "method": request.method,
            "path": request.url.path,
            "exception_type": type(exc).__name__,
        }
    )
    return _error_response(
        request, 500, "Internal server error",
        "An unexpected error occurred. Please try again or contact support if the issue persists.",
    )


def setup_exception_handlers(app):
    """
    Register exception handlers with the FastAPI app.
    """
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(InvalidRelationError, invalid_relation_handler)
    app.add_exception_handler(TypeMismatchError, type_mismatch_handler)
    app.add_exception_handler(ConfigurationMissingError, configuration_missing_handler)
    app.add_exception_handler(StorageUnavailableError, storage_unavailable_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(sqlite3.Error, sqlite_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
