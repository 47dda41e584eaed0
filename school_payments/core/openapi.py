"""OpenAPI customization utilities.

Enriches the generated schema with:
- Tags metadata
- A documented 429 response on every rate limited operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {"name": "Students", "description": "Student registration and balances."},
    {"name": "Fees", "description": "Posting fees to students."},
    {"name": "Payments", "description": "Recording payments against balances."},
    {"name": "Health", "description": "Liveness checks (not rate limited)."},
]

_TOO_MANY_REQUESTS = {
    "description": "Too many requests from this client in the current window.",
    "headers": {
        "Retry-After": {
            "description": "Seconds until the client's window resets.",
            "schema": {"type": "integer"},
        },
        "X-RateLimit-Limit": {"schema": {"type": "integer"}},
        "X-RateLimit-Remaining": {"schema": {"type": "integer"}},
        "X-RateLimit-Reset": {
            "description": "UNIX time (seconds) at which the window resets.",
            "schema": {"type": "integer"},
        },
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 responses."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith("/v1/"):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault("429", _TOO_MANY_REQUESTS)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
