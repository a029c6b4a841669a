"""
Error Handling for Foliora

Centralized error handling:
- Structured error responses
- Logging of errors
- Exception translation (domain, HTTP, validation, database)

Every error body has the same shape:
``{"error", "message", "code", "timestamp"}``.
"""

import traceback
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from foliora.exceptions import FolioraException, StoreError


_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    message: Optional[str] = None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "code": code,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


def _validation_summary(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return "; ".join(parts)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(FolioraException)
    async def foliora_exception_handler(request: Request, exc: FolioraException):
        logger.warning(f"Foliora error on {request.url.path}: {exc.code} - {exc.message}")
        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            message=exc.detail,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return create_error_response(
            error=str(exc.detail),
            code=_HTTP_CODES.get(exc.status_code, "HTTP_ERROR"),
            status_code=exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        summary = _validation_summary(exc)
        logger.warning(f"Validation error on {request.url.path}: {summary}")
        return create_error_response(
            error="Validation Error",
            code="VALIDATION_ERROR",
            status_code=400,
            message=summary,
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            f"Database error on {request.method} {request.url.path}: "
            f"{type(exc).__name__}: {exc}"
        )
        # Driver messages can leak schema details
        store_error = StoreError()
        return create_error_response(
            error=store_error.message,
            code=store_error.code,
            status_code=store_error.status_code,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}\n{traceback.format_exc()}"
        )
        return create_error_response(
            error="Internal Server Error",
            code="INTERNAL_ERROR",
            status_code=500,
            message="An unexpected error occurred",
        )
