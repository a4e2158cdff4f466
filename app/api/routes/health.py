from __future__ import annotations

from fastapi import APIRouter

from app.core.rate_limit import get_login_rate_limiter, get_password_reset_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check with tracked-token counts for each limiter.

    Returns:
        dict: ``status`` plus per-limiter stats (no token values).
    """

    return {
        "status": "ok",
        "rate_limiters": {
            "login": get_login_rate_limiter().stats(),
            "password_reset": get_password_reset_rate_limiter().stats(),
        },
    }
