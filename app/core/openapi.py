"""OpenAPI customization.

Adds the ``X-Service-Key`` security scheme, marks every operation as
requiring it and exempts the health endpoint.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Guard",
        "description": "Rate limit checks consulted before login and password reset attempts.",
    },
    {
        "name": "Health",
        "description": "Liveness check and limiter statistics.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Wrap ``app.openapi`` to inject security and tag metadata."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault(
            "securitySchemes", {}
        )
        security_schemes.setdefault(
            "ServiceKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-Service-Key",
                "description": "Shared secret presented by the authentication layer.",
            },
        )
        schema.setdefault("security", [{"ServiceKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        existing = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in existing)

        for path, methods in schema.get("paths", {}).items():
            if path.endswith("/health"):
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
