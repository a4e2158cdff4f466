"""Tests for global exception handlers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AuthenticationAppError,
    RateLimitedAppError,
    ValidationAppError,
)
from app.core.exception_handlers import setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/validation")
    async def validation_endpoint():
        raise ValidationAppError(
            code="invalid_email",
            message="Invalid email address",
            details={"hint": "Use name@domain"},
        )

    @app.get("/auth")
    async def auth_endpoint():
        raise AuthenticationAppError(code="invalid_service_key", message="Invalid or missing service key")

    @app.get("/limited")
    async def limited_endpoint():
        raise RateLimitedAppError(
            code="too_many_requests",
            message="Too many attempts. Please try again in 60 seconds.",
            details={"scope": "login", "retry_after": 60},
            headers={"Retry-After": "60"},
        )

    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


def test_validation_error_returns_400_with_details(client: TestClient) -> None:
    response = client.get("/validation")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "invalid_email"
    assert error["details"]["hint"] == "Use name@domain"
    assert "request_id" in error


def test_authentication_error_returns_403(client: TestClient) -> None:
    response = client.get("/auth")

    assert response.status_code == 403
    error = response.json()["error"]
    assert error["code"] == "invalid_service_key"
    assert "details" not in error


def test_rate_limited_error_returns_429_with_headers(client: TestClient) -> None:
    response = client.get("/limited")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert response.json()["error"]["details"]["scope"] == "login"


def test_error_str_is_message() -> None:
    error = ValidationAppError(code="x", message="readable")

    assert str(error) == "readable"


def test_fallback_handler_registered(app_with_handlers: FastAPI) -> None:
    assert Exception in app_with_handlers.exception_handlers
