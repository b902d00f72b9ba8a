"""Admin key authentication for the governor admin surface.

Admin endpoints can block arbitrary clients and lift blocks, so they are
guarded by an ``X-Admin-Key`` header validated against a comma-separated
list from environment variables. Public media routes are not authenticated.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Annotated

from fastapi import Header

from ytgrab.core.config import settings
from ytgrab.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def _key_fingerprint(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def validate_admin_key(provided_key: str | None) -> None:
    """Validate an admin key against the configured keys.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided_key: Value of the X-Admin-Key header, if any.

    Raises:
        AuthenticationAppError: If the key is missing or invalid, or if
            authentication is required but no keys are configured.
    """
    if not settings.app.admin_auth_required:
        return

    valid_keys = parse_api_keys(settings.app.admin_api_keys)

    if not valid_keys:
        logger.error(
            "admin_auth.failed",
            extra={"reason": "admin_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="admin_keys_not_configured",
            message="Admin authentication is enabled but no admin keys are configured",
            details={
                "hint": "Set APP_ADMIN_API_KEYS or disable with APP_ADMIN_AUTH_REQUIRED=false"
            },
        )

    if not provided_key:
        logger.warning("admin_auth.failed", extra={"reason": "missing_admin_key"})
        raise AuthenticationAppError(
            code="missing_admin_key",
            message="Missing admin key. Provide X-Admin-Key header.",
        )

    if not any(hmac.compare_digest(provided_key, key) for key in valid_keys):
        logger.warning(
            "admin_auth.failed",
            extra={
                "reason": "invalid_admin_key",
                "admin_key_hash": _key_fingerprint(provided_key),
            },
        )
        raise AuthenticationAppError(
            code="invalid_admin_key",
            message="Invalid admin key",
        )


async def verify_admin_key(
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    """FastAPI dependency for admin authentication.

    Usage:
        @router.get("/admin/stats", dependencies=[Depends(verify_admin_key)])

    Raises:
        AuthenticationAppError: Rendered as 403 by the global handler.
    """
    validate_admin_key(x_admin_key)
    if settings.app.admin_auth_required:
        logger.info(
            "admin_auth.success",
            extra={"admin_key_hash": _key_fingerprint(x_admin_key or "")},
        )
