from uuid import UUID

from fastapi import APIRouter, Query

from coursegate.core.modules.notification.models import NotificationView
from coursegate.web.deps import AppDep, AuthDep
from coursegate.web.openapi import ErrorResponse

router = APIRouter(tags=["notifications"])


@router.get(
    "/notifications",
    summary="List notifications",
    description="Most recent notifications of the current identity.",
    operation_id="listNotifications",
    responses={
        200: {"description": "Notifications, newest first"},
        401: {"model": ErrorResponse, "description": "Not authenticated or session invalid"},
    },
)
async def list_notifications(
    app: AppDep, auth: AuthDep, unread_only: bool = Query(False, description="Only unread notifications")
) -> list[NotificationView]:
    return await app.get_notifications(auth, unread_only)


@router.post(
    "/notifications/{notification_id}/read",
    summary="Mark notification read",
    operation_id="markNotificationRead",
    status_code=204,
    responses={
        204: {"description": "Marked as read"},
        401: {"model": ErrorResponse, "description": "Not authenticated or session invalid"},
        404: {"model": ErrorResponse, "description": "Notification not found"},
    },
)
async def mark_notification_read(notification_id: UUID, app: AppDep, auth: AuthDep) -> None:
    await app.mark_notification_read(auth, notification_id)
