"""Global exception handlers for consistent error responses.

Every error leaves the service as ``{"error": {code, message, request_id,
details?}}``. Domain errors keep their code and message; anything else is
collapsed into a generic 500 so internals never reach the client.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ytgrab.core.errors import (
    AppError,
    AuthenticationAppError,
    DownloaderAppError,
    NotFoundAppError,
    TooManyRequestsAppError,
)
from ytgrab.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Checked in order; anything unlisted is a client fault (400).
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, 403),
    (NotFoundAppError, 404),
    (TooManyRequestsAppError, 429),
    (DownloaderAppError, 502),
)


def _status_code_for(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    body = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        body["details"] = details
    return {"error": body}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error.

    Status codes: validation 400, authentication 403, not found 404,
    governor rejection 429, download backend failure 502.
    Governor rejections also carry their Retry-After style headers.
    """
    status_code = _status_code_for(exc)

    # The guard already logged the rejection itself
    log = logger.info if status_code == 429 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "path": request.url.path,
            "has_details": bool(exc.details),
        },
    )

    headers = getattr(exc, "headers", None)
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, dict(exc.details) if exc.details else None),
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for anything that is not an AppError.

    The full error is logged; the client only sees a generic message.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc)[:500],
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain and fallback handlers on ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
