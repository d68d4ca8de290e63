"""Standardized error responses across all API endpoints."""
import re
from typing import Any

import sentry_sdk
import structlog
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from abfi.modules.bankability.exceptions import BankabilityError


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all API error handlers."""
    error: str
    message: str
    detail: Any = None
    request_id: str = "unknown"

logger = structlog.get_logger()

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def error_code(exc: Exception) -> str:
    """``InvalidCapacityError`` -> ``invalid_capacity``."""
    name = type(exc).__name__.removesuffix("Error")
    return _CAMEL_BOUNDARY.sub("_", name).lower()


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    request_id = request.headers.get("x-request-id", "unknown")

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=request_id,
    )

    sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="internal_server_error",
            message="An unexpected error occurred. Our team has been notified.",
            request_id=request_id,
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    request_id = request.headers.get("x-request-id", "unknown")

    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", f"http_{exc.status_code}")
        message = exc.detail.get("message", str(exc.detail))
        detail: Any = exc.detail.get("detail")
    else:
        error = f"http_{exc.status_code}"
        message = str(exc.detail)
        detail = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail,
            "request_id": request_id,
        },
        headers=dict(exc.headers or {}),
    )


async def bankability_exception_handler(request: Request, exc: BankabilityError) -> JSONResponse:
    """Domain errors are client errors: report them as 422 with their context."""
    request_id = request.headers.get("x-request-id", "unknown")

    logger.warning(
        "bankability_request_rejected",
        error=error_code(exc),
        message=exc.message,
        path=request.url.path,
        request_id=request_id,
    )

    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=error_code(exc),
            message=exc.message,
            detail=jsonable_encoder(exc.context),
            request_id=request_id,
        ).model_dump(),
    )
