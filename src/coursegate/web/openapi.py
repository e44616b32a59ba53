from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="Coursegate API",
            version="0.1.0",
            summary="Device-bound sessions and time-limited course access",
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "description": "Bearer access token; send X-Device-Info with the same device attributes used at login",
            },
        }
        openapi_schema["security"] = [{"BearerAuth": []}]

        public_endpoints = {
            ("POST", "/api/v1/auth/login"),
            ("POST", "/api/v1/auth/register"),
            ("GET", "/health"),
        }

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in public_endpoints:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")
    details: dict[str, Any] | None = Field(None, description="Extra context, e.g. the active device on a login conflict")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Invalid email or password", "type": "authentication_error"},
                {"message": "Session expired due to inactivity", "type": "timeout"},
                {
                    "message": "User is already logged in on another device",
                    "type": "conflict",
                    "details": {"error": "ACTIVE_SESSION_EXISTS", "active_device": {"active_device_description": "Chrome on Windows (desktop)"}},
                },
            ]
        }
    }
