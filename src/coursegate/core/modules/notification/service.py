from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from coursegate.core.core import Service
from coursegate.core.db import NOTIFICATIONS
from coursegate.core.modules.notification.models import ExpiryNotice, Notification
from coursegate.core.modules.notification.rendering import notification_type, render_notice
from coursegate.core.modules.notification.sender import send_telegram_messages
from coursegate.errors import NotFoundError
from coursegate.utils import now

logger = structlog.get_logger(__name__)


class NotificationService(Service):
    """Sink for expiry notices: stores them per recipient and optionally forwards to Telegram.

    Delivery is best effort; notices are not de-duplicated between runs.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection(NOTIFICATIONS)

    async def on_start(self) -> None:
        await self._collection.create_index([("recipient_id", 1), ("created_at", -1)])

    async def deliver_expiry_notices(self, notices: list[ExpiryNotice]) -> int:
        """Store one notification per notice; returns how many were stored."""
        pending: list[tuple[Notification, ExpiryNotice]] = []
        for notice in notices:
            try:
                title, message = render_notice(notice)
            except ValueError:
                continue
            notification = Notification(
                recipient_id=notice.identity_id,
                type=notification_type(notice),
                title=title,
                message=message,
                data=notice.model_dump(mode="json"),
                priority=notice.urgency,
            )
            pending.append((notification, notice))

        if not pending:
            return 0

        await self._collection.insert_many([notification.to_mongo() for notification, _ in pending])
        logger.info("expiry_notices_stored", count=len(pending))

        config = self.core.config
        if config.telegram_bot_token and config.telegram_chat_id:
            await send_telegram_messages(
                config.telegram_bot_token,
                config.telegram_chat_id,
                [f"{notification.title}\n{notice.identity_contact}: {notification.message}" for notification, notice in pending],
            )
        return len(pending)

    async def list_notifications(self, identity_id: UUID, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        query: dict[str, Any] = {"recipient_id": identity_id}
        if unread_only:
            query["is_read"] = False
        cursor = self._collection.find(query).sort("created_at", -1).limit(limit)
        return await Notification.list_cursor(cursor)

    async def mark_read(self, identity_id: UUID, notification_id: UUID) -> None:
        result = await self._collection.update_one(
            {"_id": notification_id, "recipient_id": identity_id},
            {"$set": {"is_read": True, "read_at": now()}},
        )
        if result.matched_count == 0:
            raise NotFoundError(f"Notification '{notification_id}' not found")
