"""Error taxonomy and the uniform response envelope.

Every API answer is ``{success, message, data?, error?}``. Services raise
:class:`ApiError`; the handlers registered by :func:`register_exception_handlers`
turn it (and framework/database failures) into an enveloped JSON response.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException


log = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    INVALID_DATA = "INVALID_DATA"
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_DATE = "INVALID_DATE"
    TOO_MANY_OCCURRENCES = "TOO_MANY_OCCURRENCES"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    DUPLICATE_CATEGORY = "DUPLICATE_CATEGORY"
    CATEGORY_IN_USE = "CATEGORY_IN_USE"
    SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"
    INVALID_PRICE_ID = "INVALID_PRICE_ID"
    ACTIVE_SUBSCRIPTION_EXISTS = "ACTIVE_SUBSCRIPTION_EXISTS"
    MISSING_CUSTOMER_ID = "MISSING_CUSTOMER_ID"
    CHECKOUT_ERROR = "CHECKOUT_ERROR"
    PORTAL_ERROR = "PORTAL_ERROR"
    NOT_FOUND = "NOT_FOUND"


NOT_FOUND_CODES = frozenset(
    {
        ErrorCode.NOT_FOUND,
        ErrorCode.TRANSACTION_NOT_FOUND,
        ErrorCode.CATEGORY_NOT_FOUND,
        ErrorCode.SUBSCRIPTION_NOT_FOUND,
    }
)

_STATUS_DEFAULT_CODES: dict[int, ErrorCode] = {
    400: ErrorCode.INVALID_DATA,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.UNAUTHORIZED,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.INVALID_DATA,
    422: ErrorCode.INVALID_DATA,
}


class ApiError(Exception):
    """Business error carrying the HTTP status and classification code."""

    def __init__(
        self,
        status_code: int,
        error: ErrorCode,
        message: str,
        *,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details


def envelope(data: Any = None, message: str = "OK") -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def error_envelope(error: ErrorCode | str, message: str, *, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "error": error.value if isinstance(error, ErrorCode) else error,
    }
    if details is not None:
        body["details"] = details
    return body


def _error_response(status_code: int, error: ErrorCode | str, message: str, *, details: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(error_envelope(error, message, details=details)),
    )


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.error.value, exc.message)
    return _error_response(exc.status_code, exc.error, exc.message, details=exc.details)


async def _handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    code = _STATUS_DEFAULT_CODES.get(exc.status_code, ErrorCode.SERVER_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(exc.status_code, code, message)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or None, "message": err.get("msg", "invalid value")})
    missing = all(err.get("type") == "missing" for err in exc.errors())
    code = ErrorCode.MISSING_FIELDS if missing and details else ErrorCode.INVALID_DATA
    return _error_response(400, code, "Invalid request data", details=details)


async def _handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.exception("database failure on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorCode.DATABASE_ERROR, "Database error. Please try again later.")


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorCode.SERVER_ERROR, "An unexpected error occurred. Please try again.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _handle_api_error)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _handle_database_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
