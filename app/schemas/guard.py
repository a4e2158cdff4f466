from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


def normalize_email(value: str) -> str:
    """Strip and lower-case an email; reject obviously malformed input."""
    email = value.strip().lower()
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain or "@" in domain:
        raise ValueError("Invalid email address")
    return email


class GuardCheckRequest(BaseModel):
    """Body sent by the authentication layer before an attempt."""

    email: str = Field(
        ...,
        max_length=320,
        description="Email the attempt is for. Normalized (trimmed, lower-cased) before counting.",
        examples=["a@example.com"],
    )

    @field_validator("email")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_email(value)


class RateLimitDecisionResponse(BaseModel):
    """Decision returned for an allowed attempt."""

    allowed: bool
    limit: int
    remaining: int = Field(..., ge=0)
    reset_at_epoch_ms: int = Field(
        ...,
        description="Approximate reset hint: call time plus the window length.",
    )


class ClearCounterResponse(BaseModel):
    cleared: bool
