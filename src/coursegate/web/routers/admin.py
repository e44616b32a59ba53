from datetime import datetime
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from coursegate.core.modules.entitlement.models import EntitlementAccess, ExpiryReport
from coursegate.core.modules.identity.models import IdentityStatus
from coursegate.core.modules.notification.models import ExpiryNotice
from coursegate.core.modules.scheduler.models import SweepSummary
from coursegate.core.modules.session.models import ActiveSessionView
from coursegate.web.deps import AppDep, AuthDep
from coursegate.web.openapi import ErrorResponse

router = APIRouter(prefix="/admin", tags=["admin"])

ADMIN_RESPONSES: dict[int | str, dict[str, object]] = {
    401: {"model": ErrorResponse, "description": "Not authenticated or session invalid"},
    403: {"model": ErrorResponse, "description": "Admin privileges required"},
}


class ActiveSessionsResponse(BaseModel):
    total_active_sessions: int = Field(..., description="Number of online identities")
    sessions: list[ActiveSessionView] = Field(..., description="Sessions, most recently active first")


class ForceLogoutResponse(BaseModel):
    was_online: bool = Field(..., description="Whether a session was cleared")


class StatusResponse(BaseModel):
    status: IdentityStatus = Field(..., description="New account status")


class GrantRequest(BaseModel):
    course_id: UUID = Field(..., description="Course to grant")
    window_days: int | None = Field(None, ge=1, le=3650, description="Access window in days (default 180)")


class ExtendRequest(BaseModel):
    months: int | None = Field(None, ge=1, le=60, description="Months to add to the current expiry (default 6)")


class ExtendResponse(BaseModel):
    expires_at: datetime = Field(..., description="New expiry")


class CleanupResponse(BaseModel):
    cleared: int = Field(..., description="Sessions cleared")


@router.get(
    "/sessions",
    summary="List active sessions",
    operation_id="listActiveSessions",
    responses=ADMIN_RESPONSES,
)
async def list_active_sessions(app: AppDep, auth: AuthDep) -> ActiveSessionsResponse:
    sessions = await app.list_active_sessions(auth)
    return ActiveSessionsResponse(total_active_sessions=len(sessions), sessions=sessions)


@router.post(
    "/sessions/cleanup",
    summary="Clear idle sessions",
    description="Run the idle-session cleanup now.",
    operation_id="cleanupSessions",
    responses=ADMIN_RESPONSES,
)
async def cleanup_sessions(app: AppDep, auth: AuthDep) -> CleanupResponse:
    return CleanupResponse(cleared=await app.run_session_cleanup(auth))


@router.post(
    "/identities/{identity_id}/force-logout",
    summary="Force logout",
    operation_id="forceLogoutIdentity",
    responses={**ADMIN_RESPONSES, 404: {"model": ErrorResponse, "description": "Identity not found"}},
)
async def force_logout(identity_id: UUID, app: AppDep, auth: AuthDep) -> ForceLogoutResponse:
    return ForceLogoutResponse(was_online=await app.force_logout_identity(auth, identity_id))


@router.post(
    "/identities/{identity_id}/toggle-status",
    summary="Block or unblock identity",
    operation_id="toggleIdentityStatus",
    responses={**ADMIN_RESPONSES, 400: {"model": ErrorResponse, "description": "Cannot change own status"}},
)
async def toggle_status(identity_id: UUID, app: AppDep, auth: AuthDep) -> StatusResponse:
    return StatusResponse(status=await app.toggle_identity_status(auth, identity_id))


@router.delete(
    "/identities/{identity_id}",
    summary="Remove identity",
    description="Soft delete: the record is kept with a removed status and a rewritten email.",
    operation_id="removeIdentity",
    status_code=204,
    responses={**ADMIN_RESPONSES, 404: {"model": ErrorResponse, "description": "Identity not found"}},
)
async def remove_identity(identity_id: UUID, app: AppDep, auth: AuthDep) -> None:
    await app.remove_identity(auth, identity_id)


@router.post(
    "/identities/{identity_id}/entitlements",
    summary="Grant course access",
    operation_id="grantEntitlement",
    status_code=201,
    responses={**ADMIN_RESPONSES, 409: {"model": ErrorResponse, "description": "Access already granted"}},
)
async def grant_entitlement(identity_id: UUID, data: GrantRequest, app: AppDep, auth: AuthDep) -> EntitlementAccess:
    return await app.grant_entitlement(auth, identity_id, data.course_id, data.window_days)


@router.post(
    "/identities/{identity_id}/entitlements/{course_id}/extend",
    summary="Extend course access",
    description="Add months to the current expiry and reactivate the entitlement.",
    operation_id="extendEntitlement",
    responses={**ADMIN_RESPONSES, 404: {"model": ErrorResponse, "description": "Not enrolled"}},
)
async def extend_entitlement(
    identity_id: UUID, course_id: UUID, data: ExtendRequest, app: AppDep, auth: AuthDep
) -> ExtendResponse:
    return ExtendResponse(expires_at=await app.extend_entitlement(auth, identity_id, course_id, data.months))


@router.get(
    "/expiry/report",
    summary="Expiry report",
    operation_id="getExpiryReport",
    responses=ADMIN_RESPONSES,
)
async def get_expiry_report(app: AppDep, auth: AuthDep) -> ExpiryReport:
    return await app.get_expiry_report(auth)


@router.post(
    "/expiry/sweep",
    summary="Run expiry sweep",
    operation_id="runExpirySweep",
    responses=ADMIN_RESPONSES,
)
async def run_expiry_sweep(app: AppDep, auth: AuthDep) -> SweepSummary:
    return await app.run_expiry_sweep(auth)


@router.post(
    "/expiry/warnings",
    summary="Send expiry warnings",
    operation_id="runExpiryWarnings",
    responses=ADMIN_RESPONSES,
)
async def run_expiry_warnings(app: AppDep, auth: AuthDep) -> list[ExpiryNotice]:
    return await app.run_expiry_warnings(auth)
