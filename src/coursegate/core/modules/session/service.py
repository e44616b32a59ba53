import secrets
from datetime import timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from coursegate.core.core import Service
from coursegate.core.db import IDENTITIES
from coursegate.core.modules.device.fingerprint import describe, fingerprint
from coursegate.core.modules.device.models import DeviceAttributes, DeviceInfo
from coursegate.core.modules.entitlement.expiry import sweep_expired
from coursegate.core.modules.identity.models import Identity, LoginAttempts
from coursegate.core.modules.session.models import ActiveSession, Location, LoginConflict, SessionCheck
from coursegate.core.modules.session.rules import check_conflict, check_session
from coursegate.utils import now

logger = structlog.get_logger(__name__)

CLEAR_SESSION: dict[str, Any] = {"$set": {"is_online": False}, "$unset": {"active_session": ""}}


class SessionService(Service):
    """Single device-bound session per identity.

    Every write happens under the identity lock, so validate/touch/clear is one
    step with respect to other requests, logins and sweeps on the same identity.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection(IDENTITIES)

    @property
    def timeout(self) -> timedelta:
        return timedelta(minutes=self.core.config.session_timeout_minutes)

    async def get_login_conflict(self, identity_id: UUID, device_fingerprint: str) -> LoginConflict | None:
        """Read-only gate run before a new session is written."""
        identity = await self.core.services.identity.get_identity(identity_id)
        return check_conflict(identity, device_fingerprint, now(), self.timeout)

    async def establish(
        self,
        identity_id: UUID,
        attributes: DeviceAttributes,
        source_address: str = "",
        location: Location | None = None,
    ) -> str:
        """Write a fresh session, replacing any previous one, and return its secret."""
        current = now()
        session = ActiveSession(
            device_fingerprint=fingerprint(attributes),
            device_info=DeviceInfo.from_attributes(attributes),
            device_description=describe(attributes),
            login_at=current,
            last_activity_at=current,
            source_address=source_address,
            location=location or Location(),
            session_secret=secrets.token_hex(32),
        )
        async with self.core.locks.lock(identity_id):
            await self._collection.update_one(
                {"_id": identity_id},
                {
                    "$set": {
                        "is_online": True,
                        "active_session": session.model_dump(),
                        "last_login_at": current,
                        "login_attempts": LoginAttempts().model_dump(),
                    }
                },
            )
        logger.info("session_established", identity_id=identity_id, device=session.device_description)
        return session.session_secret

    async def validate(self, identity_id: UUID, device_fingerprint: str) -> tuple[SessionCheck, Identity]:
        """Check the presented device against the stored session and touch it.

        Mismatch and timeout clear the session before returning. On success the
        activity timestamp moves to now and lapsed entitlements are flagged in
        the same write.
        """
        async with self.core.locks.lock(identity_id):
            identity = await self.core.services.identity.get_identity(identity_id)
            current = now()
            result = check_session(identity, device_fingerprint, current, self.timeout)

            if result in (SessionCheck.DEVICE_MISMATCH, SessionCheck.TIMEOUT):
                await self._clear(identity_id)
                identity.is_online = False
                identity.active_session = None
                logger.warning("session_rejected", identity_id=identity_id, reason=result)
                return result, identity
            if result == SessionCheck.NO_SESSION or identity.active_session is None:
                return SessionCheck.NO_SESSION, identity

            update: dict[str, Any] = {"active_session.last_activity_at": current}
            if sweep_expired(identity.entitlements, current):
                update["entitlements"] = [e.model_dump() for e in identity.entitlements]
            await self._collection.update_one({"_id": identity_id}, {"$set": update})
            identity.active_session.last_activity_at = current
            return SessionCheck.OK, identity

    async def force_logout(self, identity_id: UUID) -> bool:
        """Clear the session regardless of which device holds it. Returns whether one was active."""
        async with self.core.locks.lock(identity_id):
            identity = await self.core.services.identity.get_identity(identity_id)
            was_online = identity.is_online
            await self._clear(identity_id)
        if was_online:
            logger.info("session_force_logout", identity_id=identity_id)
        return was_online

    async def logout(self, identity_id: UUID) -> None:
        async with self.core.locks.lock(identity_id):
            await self._clear(identity_id)
        logger.info("session_logout", identity_id=identity_id)

    async def cleanup_inactive_sessions(self) -> int:
        """Clear online sessions idle longer than the cleanup threshold; return how many were cleared."""
        idle = timedelta(minutes=self.core.config.session_cleanup_minutes)
        cutoff = now() - idle
        cursor = self._collection.find(
            {"is_online": True, "active_session.last_activity_at": {"$lt": cutoff}}, {"_id": 1}
        )
        candidates = [doc["_id"] async for doc in cursor]

        cleared = 0
        for identity_id in candidates:
            async with self.core.locks.lock(identity_id):
                # Re-check under the lock: a request may have touched it since the query
                result = await self._collection.update_one(
                    {"_id": identity_id, "is_online": True, "active_session.last_activity_at": {"$lt": now() - idle}},
                    CLEAR_SESSION,
                )
                cleared += result.modified_count
        if cleared:
            logger.info("inactive_sessions_cleared", count=cleared)
        return cleared

    async def _clear(self, identity_id: UUID) -> None:
        await self._collection.update_one({"_id": identity_id}, CLEAR_SESSION)
