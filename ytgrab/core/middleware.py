"""HTTP middleware for request correlation and access logging.

The middleware:
- Accepts an incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars for the whole request lifecycle
- Writes one sanitized access log line per request (hashed client key,
  path truncated to 200 chars)
- Echoes request_id and total duration in response headers

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from ytgrab.core.client_key import resolve_client_key
from ytgrab.core.config import settings
from ytgrab.core.logging import clear_request_id, hash_client_key, set_request_id

logger = logging.getLogger("ytgrab.access")

MAX_LOGGED_PATH = 200


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate a correlation id and log the request once it completes.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response with ``X-Request-ID`` and ``X-Request-Duration-ms`` headers.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path[:MAX_LOGGED_PATH],
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "key_hash": hash_client_key(resolve_client_key(request)),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
