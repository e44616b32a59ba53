from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from coursegate.core.modules.identity.models import AuthResult
from coursegate.core.modules.session.models import Location
from coursegate.web.deps import AppDep, AuthDep, client_address, device_from_request
from coursegate.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Authentication request."""

    email: str = Field(..., description="Account email")
    password: str = Field(..., description="Account password")
    device: dict[str, Any] | None = Field(None, description="Client-reported device attributes")
    location: Location | None = Field(None, description="Approximate location")
    force_logout: bool = Field(False, description="End the session on any other device before logging in")


class RegisterRequest(BaseModel):
    """Registration request."""

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: str = Field(..., description="Account email")
    password: str = Field(..., min_length=6, description="Account password")
    device: dict[str, Any] | None = Field(None, description="Client-reported device attributes")
    location: Location | None = Field(None, description="Approximate location")


@router.post(
    "/auth/register",
    summary="Register account",
    description="Create an account and start a session bound to the registering device.",
    operation_id="register",
    status_code=201,
    responses={
        201: {"description": "Account created and logged in"},
        400: {"model": ErrorResponse, "description": "Invalid request or email already registered"},
    },
)
async def register(data: RegisterRequest, request: Request, app: AppDep) -> AuthResult:
    return await app.register(
        data.name,
        data.email,
        data.password,
        device_from_request(request, data.device),
        client_address(request),
        data.location,
    )


@router.post(
    "/auth/login",
    summary="Authenticate",
    description=(
        "Authenticate with email and password. Only one device may hold a session at a time: "
        "while another device is active the request fails with 409 unless force_logout is set."
    ),
    operation_id="login",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Account blocked"},
        409: {"model": ErrorResponse, "description": "Active session on another device"},
        423: {"model": ErrorResponse, "description": "Account temporarily locked"},
    },
)
async def login(data: LoginRequest, request: Request, app: AppDep) -> AuthResult:
    return await app.login(
        data.email,
        data.password,
        device_from_request(request, data.device),
        client_address(request),
        data.location,
        data.force_logout,
    )


@router.post(
    "/auth/logout",
    summary="End session",
    description="Invalidate the current session.",
    operation_id="logout",
    status_code=204,
    responses={
        204: {"description": "Successfully logged out"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def logout(app: AppDep, auth: AuthDep) -> None:
    await app.logout(auth)
