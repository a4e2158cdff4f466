"""Service key authentication for guard endpoints.

The authentication layer calls the guard endpoints with a shared secret in the
``X-Service-Key`` header. Keys come from ``APP_SERVICE_KEYS`` (comma-separated).
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Annotated

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def parse_service_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated service keys into a set.

    Examples:
        >>> parse_service_keys("key1, key2 ,key1")
        {'key1', 'key2'}
        >>> parse_service_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def _key_hash(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def validate_service_key(provided_key: str) -> None:
    """Check ``provided_key`` against the configured keys.

    Raises:
        AuthenticationAppError: If no keys are configured while auth is
            required, or if the key does not match.
    """
    if not settings.app.service_key_required:
        return

    valid_keys = parse_service_keys(settings.app.service_keys)
    if not valid_keys:
        logger.error(
            "guard.service_key_validation_failed",
            extra={"reason": "service_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="service_keys_not_configured",
            message="Service key authentication is enabled but no keys are configured",
            details={
                "hint": "Set APP_SERVICE_KEYS or disable auth with APP_SERVICE_KEY_REQUIRED=false"
            },
        )

    if not any(hmac.compare_digest(provided_key.encode(), key.encode()) for key in valid_keys):
        logger.warning(
            "guard.service_key_validation_failed",
            extra={"reason": "invalid_service_key", "key_hash": _key_hash(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_service_key",
            message="Invalid or missing service key",
        )


async def verify_service_key(
    x_service_key: Annotated[str | None, Header(alias="X-Service-Key")] = None,
) -> None:
    """FastAPI dependency enforcing the service key.

    Usage:
        @router.post("/guarded", dependencies=[Depends(verify_service_key)])

    Raises:
        AuthenticationAppError: 403 when the header is missing or invalid.
    """
    if not settings.app.service_key_required:
        return

    if not x_service_key:
        logger.warning("guard.service_key_missing")
        raise AuthenticationAppError(
            code="missing_service_key",
            message="Missing service key. Provide X-Service-Key header.",
        )

    validate_service_key(x_service_key)
