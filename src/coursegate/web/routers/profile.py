from fastapi import APIRouter
from pydantic import BaseModel, Field

from coursegate.core.modules.identity.models import IdentityView
from coursegate.web.deps import AppDep, AuthDep
from coursegate.web.openapi import ErrorResponse

router = APIRouter(tags=["profile"])


class ChangePasswordRequest(BaseModel):
    """Request to change the account password."""

    old_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., min_length=1, description="New password")


@router.get(
    "/profile",
    summary="Get current profile",
    description="Get the profile of the currently authenticated identity, including its entitlements.",
    operation_id="getCurrentProfile",
    responses={
        200: {"description": "Current profile"},
        401: {"model": ErrorResponse, "description": "Not authenticated or session invalid"},
    },
)
async def get_profile(app: AppDep, auth: AuthDep) -> IdentityView:
    return await app.get_current_identity(auth)


@router.post(
    "/profile/change-password",
    summary="Change password",
    description="Change the password of the currently authenticated identity.",
    operation_id="changePassword",
    status_code=204,
    responses={
        204: {"description": "Password changed successfully"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        400: {"model": ErrorResponse, "description": "Invalid request"},
    },
)
async def change_password(request: ChangePasswordRequest, app: AppDep, auth: AuthDep) -> None:
    await app.change_password(auth, request.old_password, request.new_password)
