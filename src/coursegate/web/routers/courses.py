from uuid import UUID

from fastapi import APIRouter

from coursegate.core.modules.entitlement.models import EntitlementAccess, EntitlementView
from coursegate.web.deps import AppDep, AuthDep
from coursegate.web.openapi import ErrorResponse

router = APIRouter(tags=["courses"])


@router.get(
    "/entitlements",
    summary="List active entitlements",
    description="Courses the current identity can access right now.",
    operation_id="listEntitlements",
    responses={
        200: {"description": "Active entitlements"},
        401: {"model": ErrorResponse, "description": "Not authenticated or session invalid"},
    },
)
async def list_entitlements(app: AppDep, auth: AuthDep) -> list[EntitlementView]:
    return await app.get_active_entitlements(auth)


@router.get(
    "/courses/{course_id}/access",
    summary="Check course access",
    description="Check that the current identity holds live access to a course.",
    operation_id="getCourseAccess",
    responses={
        200: {"description": "Access granted"},
        401: {"model": ErrorResponse, "description": "Not authenticated or session invalid"},
        403: {"model": ErrorResponse, "description": "Not enrolled or access expired"},
    },
)
async def get_course_access(course_id: UUID, app: AppDep, auth: AuthDep) -> EntitlementAccess:
    return await app.get_course_access(auth, course_id)
