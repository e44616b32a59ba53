from collections.abc import AsyncIterator
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from coursegate.core.core import Service
from coursegate.core.db import IDENTITIES
from coursegate.core.modules.entitlement import expiry
from coursegate.core.modules.entitlement.models import (
    Entitlement,
    EntitlementAccess,
    ExpiringEntitlement,
    ExpiryReport,
    ExpiryStats,
    GrantResult,
)
from coursegate.core.modules.identity.models import Identity
from coursegate.utils import now

logger = structlog.get_logger(__name__)


class EntitlementService(Service):
    """Grants, checks, extends and expires course access embedded in identities."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection(IDENTITIES)

    async def _load(self, identity_id: UUID) -> Identity:
        return await self.core.services.identity.get_identity(identity_id)

    async def _save_entitlements(self, identity: Identity) -> None:
        await self._collection.update_one(
            {"_id": identity.id}, {"$set": {"entitlements": [e.model_dump() for e in identity.entitlements]}}
        )

    async def grant(self, identity_id: UUID, course_id: UUID, window_days: int | None = None) -> GrantResult:
        """Grant course access for a fixed window starting now.

        An existing lapsed entitlement for the course is renewed in place and keeps its progress.
        """
        if window_days is None:
            window_days = self.core.config.entitlement_window_days
        async with self.core.locks.lock(identity_id):
            identity = await self._load(identity_id)
            current = now()
            fresh = expiry.new_entitlement(course_id, current, window_days)

            existing = identity.find_entitlement(course_id)
            if existing is not None:
                if not expiry.is_lapsed(existing, current):
                    return GrantResult.ALREADY_GRANTED
                fresh.progress = existing.progress
                identity.entitlements = [fresh if e is existing else e for e in identity.entitlements]
            else:
                identity.entitlements.append(fresh)

            await self._save_entitlements(identity)
        logger.info("entitlement_granted", identity_id=identity_id, course_id=course_id, expires_at=fresh.expires_at)
        return GrantResult.GRANTED

    async def is_expired(self, identity_id: UUID, course_id: UUID) -> bool:
        identity = await self._load(identity_id)
        return expiry.is_expired(identity.entitlements, course_id, now())

    async def get_course_access(self, identity_id: UUID, course_id: UUID) -> EntitlementAccess:
        """Live access decision plus the dates needed to explain a refusal."""
        identity = await self._load(identity_id)
        entitlement = identity.find_entitlement(course_id)
        if entitlement is None:
            return EntitlementAccess(course_id=course_id, expired=True)
        return EntitlementAccess(
            course_id=course_id,
            expired=expiry.is_lapsed(entitlement, now()),
            granted_at=entitlement.granted_at,
            expires_at=entitlement.expires_at,
            progress=entitlement.progress,
        )

    async def list_active(self, identity_id: UUID) -> list[Entitlement]:
        identity = await self._load(identity_id)
        return expiry.list_active(identity.entitlements, now())

    async def extend(self, identity_id: UUID, course_id: UUID, months: int | None = None) -> datetime | None:
        """Push expiry forward from its current value. Returns the new expiry, or None if not enrolled."""
        if months is None:
            months = self.core.config.extension_months
        async with self.core.locks.lock(identity_id):
            identity = await self._load(identity_id)
            entitlement = identity.find_entitlement(course_id)
            if entitlement is None:
                return None
            expires_at = expiry.extend(entitlement, months)
            await self._save_entitlements(identity)
        logger.info("entitlement_extended", identity_id=identity_id, course_id=course_id, months=months, expires_at=expires_at)
        return expires_at

    async def update_progress(self, identity_id: UUID, course_id: UUID, progress: int) -> int | None:
        """Record course progress without ever lowering it. Returns the stored value, or None if not enrolled."""
        progress = max(0, min(100, progress))
        async with self.core.locks.lock(identity_id):
            identity = await self._load(identity_id)
            entitlement = identity.find_entitlement(course_id)
            if entitlement is None:
                return None
            if progress > entitlement.progress:
                entitlement.progress = progress
                await self._save_entitlements(identity)
            return entitlement.progress

    async def sweep_identity(self, identity_id: UUID) -> int:
        """Flag lapsed entitlements of one identity; returns the number newly expired."""
        async with self.core.locks.lock(identity_id):
            identity = await self._load(identity_id)
            changed = expiry.sweep_expired(identity.entitlements, now())
            if changed:
                await self._save_entitlements(identity)
            return changed

    async def iter_identity_ids(self) -> AsyncIterator[UUID]:
        """Ids of identities holding at least one entitlement."""
        async for doc in self._collection.find({"entitlements.0": {"$exists": True}}, {"_id": 1}):
            yield doc["_id"]

    async def find_expiring(self, days: int) -> list[ExpiringEntitlement]:
        """Non-expired entitlements whose expiry falls between now and now + days."""
        current = now()
        threshold = current + timedelta(days=days)
        cursor = self._collection.find(
            {"entitlements": {"$elemMatch": {"expired": False, "expires_at": {"$gte": current, "$lte": threshold}}}}
        )
        result: list[ExpiringEntitlement] = []
        async for doc in cursor:
            identity = Identity.model_validate(doc)
            result.extend(
                ExpiringEntitlement(
                    identity_id=identity.id,
                    email=identity.email,
                    name=identity.name,
                    course_id=entitlement.course_id,
                    expires_at=entitlement.expires_at,
                    granted_at=entitlement.granted_at,
                    days_remaining=expiry.days_remaining(entitlement, current),
                    progress=entitlement.progress,
                )
                for entitlement in identity.entitlements
                if expiry.is_expiring_within(entitlement, current, days)
            )
        return result

    async def get_expiry_stats(self) -> ExpiryStats:
        entitlements: list[Entitlement] = []
        async for doc in self._collection.find({"entitlements.0": {"$exists": True}}, {"entitlements": 1}):
            entitlements.extend(Entitlement.model_validate(item) for item in doc["entitlements"])
        return expiry.summarize(entitlements, now())

    async def get_expiry_report(self) -> ExpiryReport:
        stats = await self.get_expiry_stats()
        return ExpiryReport(
            statistics=stats,
            expiry_rate=stats.expiry_rate,
            expiring_in_1_day=await self.find_expiring(1),
            expiring_in_7_days=await self.find_expiring(7),
            generated_at=now(),
        )
