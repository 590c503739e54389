"""
Ledger errors rendered as the standard error envelope
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from healcoin_ledger.core.clock import utcnow
from healcoin_ledger.domain.common import (
    AccountInactive,
    CapExceeded,
    DuplicateDetected,
    InsufficientBalance,
    LedgerError,
    NotFound,
    NotReversible,
    OutOfStock,
    StorageConflict,
    StorageUnavailable,
    SuspiciousActivity,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[LedgerError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    InsufficientBalance: status.HTTP_400_BAD_REQUEST,
    AccountInactive: status.HTTP_403_FORBIDDEN,
    SuspiciousActivity: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    DuplicateDetected: status.HTTP_409_CONFLICT,
    OutOfStock: status.HTTP_409_CONFLICT,
    NotReversible: status.HTTP_409_CONFLICT,
    CapExceeded: status.HTTP_429_TOO_MANY_REQUESTS,
    # a conflict only escapes the ledger if something bypassed its retry loop
    StorageConflict: status.HTTP_503_SERVICE_UNAVAILABLE,
    StorageUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class ErrorDetail(BaseModel):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail
    timestamp: str


def create_error_response(
    code: str,
    message: str,
    status_code: int,
    context: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, context=context or None),
        timestamp=utcnow().isoformat(),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def status_for(exc: LedgerError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_400_BAD_REQUEST


async def ledger_exception_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Ledger error on %s %s: %s - %s", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.warning("Ledger rejection on %s %s: %s - %s", request.method, request.url.path, exc.code, exc.message)
    return create_error_response(exc.code, exc.message, status_code, exc.context)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first_error = exc.errors()[0]
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    message = first_error.get("msg", "Validation error")
    logger.warning("Validation error on %s: %s", field, message)
    return create_error_response(
        ValidationError.code,
        f"Validation error on field '{field}': {message}",
        status.HTTP_400_BAD_REQUEST,
        {"field": field},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else "HTTP_ERROR"
    return create_error_response(code, str(exc.detail), exc.status_code)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return create_error_response(
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred. Please try again later.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def add_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
