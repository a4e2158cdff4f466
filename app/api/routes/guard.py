from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.core.auth import verify_service_key
from app.core.config import settings
from app.core.errors import UnprocessableInputAppError
from app.core.rate_limit import (
    LOGIN_SCOPE,
    PASSWORD_RESET_SCOPE,
    enforce_rate_limit,
    get_login_rate_limiter,
    get_password_reset_rate_limiter,
    hash_token,
)
from app.schemas.guard import (
    ClearCounterResponse,
    GuardCheckRequest,
    RateLimitDecisionResponse,
    normalize_email,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/guard",
    tags=["Guard"],
    dependencies=[Depends(verify_service_key)],
)

_TOO_MANY = {429: {"description": "Too many attempts for this email"}}


@router.post("/login", response_model=RateLimitDecisionResponse, responses=_TOO_MANY)
def check_login(
    body: GuardCheckRequest,
    limiter: Annotated[AbstractRateLimiter, Depends(get_login_rate_limiter)],
) -> RateLimitDecisionResponse:
    """Count a login attempt for the email before credentials are verified.

    Returns the decision when the attempt may proceed. Raises 429 with
    Retry-After and X-RateLimit-* headers once the email exceeds its quota.
    """
    decision = enforce_rate_limit(
        limiter,
        body.email,
        limit=settings.rate_limit.login_limit,
        scope=LOGIN_SCOPE,
    )
    return RateLimitDecisionResponse(**decision.to_dict())


@router.post("/password-reset", response_model=RateLimitDecisionResponse, responses=_TOO_MANY)
def check_password_reset(
    body: GuardCheckRequest,
    limiter: Annotated[AbstractRateLimiter, Depends(get_password_reset_rate_limiter)],
) -> RateLimitDecisionResponse:
    """Count a password reset request for the email."""
    decision = enforce_rate_limit(
        limiter,
        body.email,
        limit=settings.rate_limit.password_reset_limit,
        scope=PASSWORD_RESET_SCOPE,
    )
    return RateLimitDecisionResponse(**decision.to_dict())


@router.delete("/login/{email}", response_model=ClearCounterResponse)
def clear_login_counter(
    email: Annotated[str, Path(max_length=320)],
    limiter: Annotated[AbstractRateLimiter, Depends(get_login_rate_limiter)],
) -> ClearCounterResponse:
    """Forget the login counter for an email after a successful sign-in."""
    try:
        token = normalize_email(email)
    except ValueError as exc:
        raise UnprocessableInputAppError(code="invalid_email", message=str(exc)) from exc

    cleared = limiter.reset(token)
    logger.info(
        "rate_limit.cleared",
        extra={"scope": LOGIN_SCOPE, "token_hash": hash_token(token), "cleared": cleared},
    )
    return ClearCounterResponse(cleared=cleared)
