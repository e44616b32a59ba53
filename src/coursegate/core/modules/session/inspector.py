from typing import Any

from pymongo.asynchronous.database import AsyncDatabase

from coursegate.core.core import Service
from coursegate.core.db import IDENTITIES
from coursegate.core.modules.identity.models import Identity
from coursegate.core.modules.session.models import ActiveSessionView


class SessionInspector(Service):
    """Read-only admin view over online identities."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection(IDENTITIES)

    async def list_active_sessions(self) -> list[ActiveSessionView]:
        """All online sessions, most recently active first."""
        cursor = self._collection.find({"is_online": True}).sort("active_session.last_activity_at", -1)
        identities = await Identity.list_cursor(cursor)
        return [
            ActiveSessionView(
                identity_id=identity.id,
                name=identity.name,
                email=identity.email,
                role=identity.role,
                device_description=identity.active_session.device_description,
                login_at=identity.active_session.login_at,
                last_activity_at=identity.active_session.last_activity_at,
                source_address=identity.active_session.source_address,
                location=identity.active_session.location,
            )
            for identity in identities
            if identity.active_session is not None
        ]
