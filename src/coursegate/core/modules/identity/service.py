import asyncio
import math
from datetime import timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from coursegate.core.core import Service
from coursegate.core.db import IDENTITIES
from coursegate.core.modules.credential.passwords import hash_password, validate_password, verify_password
from coursegate.core.modules.identity.models import Identity, IdentityStatus, LoginAttempts, Role
from coursegate.errors import NotFoundError, ValidationError
from coursegate.utils import is_email, now

logger = structlog.get_logger(__name__)


class IdentityService(Service):
    """Manages identity records: registration, credentials, status and removal.

    Session and entitlement fields are only written by their own services.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection(IDENTITIES)

    async def get_identity(self, identity_id: UUID) -> Identity:
        doc = await self._collection.find_one({"_id": identity_id})
        if doc is None:
            raise NotFoundError(f"Identity '{identity_id}' not found")
        return Identity.model_validate(doc)

    async def find_by_email(self, email: str) -> Identity | None:
        doc = await self._collection.find_one({"email": email.strip().lower()})
        if doc is None:
            return None
        return Identity.model_validate(doc)

    async def register(self, name: str, email: str, password: str, role: Role = Role.USER) -> Identity:
        """Create an identity with a hashed password."""
        email = email.strip().lower()
        name = name.strip()
        if not name:
            raise ValidationError("Name is required")
        if not is_email(email):
            raise ValidationError("Please enter a valid email")
        validate_password(password)
        if await self.find_by_email(email) is not None:
            raise ValidationError(f"Identity '{email}' already exists")

        password_hash = await asyncio.to_thread(hash_password, password, self.core.config.bcrypt_rounds)
        identity = Identity(name=name, email=email, password_hash=password_hash, role=role)
        await self._collection.insert_one(identity.to_mongo())
        logger.info("identity_registered", identity_id=identity.id, role=role)
        return identity

    async def verify_credentials(self, identity: Identity, password: str) -> bool:
        """Check a password off the event loop; bcrypt is deliberately slow."""
        return await asyncio.to_thread(verify_password, password, identity.password_hash)

    def lock_minutes_remaining(self, identity: Identity) -> int:
        """Minutes until a locked account accepts logins again, 0 if not locked."""
        locked_until = identity.login_attempts.locked_until
        current = now()
        if locked_until is None or locked_until <= current:
            return 0
        return math.ceil((locked_until - current) / timedelta(minutes=1))

    async def record_failed_login(self, identity_id: UUID) -> LoginAttempts:
        """Count a failed password check and lock the account once the limit is reached."""
        config = self.core.config
        async with self.core.locks.lock(identity_id):
            identity = await self.get_identity(identity_id)
            current = now()
            attempts = identity.login_attempts
            if attempts.locked_until is not None and attempts.locked_until <= current:
                attempts = LoginAttempts()
            attempts.count += 1
            attempts.last_attempt_at = current
            if attempts.count >= config.max_login_attempts:
                attempts.locked_until = current + timedelta(minutes=config.login_lock_minutes)
                logger.warning("identity_login_locked", identity_id=identity_id, attempts=attempts.count)
            await self._collection.update_one({"_id": identity_id}, {"$set": {"login_attempts": attempts.model_dump()}})
            return attempts

    async def change_password(self, identity_id: UUID, old_password: str, new_password: str) -> None:
        """Change password after verifying the current one."""
        identity = await self.get_identity(identity_id)
        if not await self.verify_credentials(identity, old_password):
            raise ValidationError("Invalid current password")

        validate_password(new_password)
        password_hash = await asyncio.to_thread(hash_password, new_password, self.core.config.bcrypt_rounds)
        await self._collection.update_one({"_id": identity_id}, {"$set": {"password_hash": password_hash}})

    async def toggle_status(self, identity_id: UUID) -> IdentityStatus:
        """Switch between active and blocked. Blocking also ends the current session."""
        async with self.core.locks.lock(identity_id):
            identity = await self.get_identity(identity_id)
            if identity.status == IdentityStatus.REMOVED:
                raise ValidationError("Cannot change status of a removed identity")

            if identity.status == IdentityStatus.ACTIVE:
                new_status = IdentityStatus.BLOCKED
                await self._collection.update_one(
                    {"_id": identity_id},
                    {"$set": {"status": new_status, "is_online": False}, "$unset": {"active_session": ""}},
                )
            else:
                new_status = IdentityStatus.ACTIVE
                await self._collection.update_one({"_id": identity_id}, {"$set": {"status": new_status}})

        logger.info("identity_status_changed", identity_id=identity_id, previous=identity.status, status=new_status)
        return new_status

    async def remove(self, identity_id: UUID) -> None:
        """Soft delete: mark removed, free the email and end the session."""
        async with self.core.locks.lock(identity_id):
            identity = await self.get_identity(identity_id)
            if identity.status == IdentityStatus.REMOVED:
                return
            removed_email = f"deleted_{int(now().timestamp() * 1000)}_{identity.email}"
            await self._collection.update_one(
                {"_id": identity_id},
                {
                    "$set": {"status": IdentityStatus.REMOVED, "email": removed_email, "is_online": False},
                    "$unset": {"active_session": ""},
                },
            )
        logger.info("identity_removed", identity_id=identity_id)

    async def ensure_admin_identity_exists(self) -> None:
        """Create the configured admin identity if missing."""
        config = self.core.config
        if await self.find_by_email(config.admin_email) is None:
            await self.register("Administrator", config.admin_email, config.admin_password, Role.ADMIN)

    async def on_start(self) -> None:
        """Create indexes and seed the admin identity."""
        await self._collection.create_index([("email", 1)], unique=True)
        await self._collection.create_index([("is_online", 1), ("active_session.last_activity_at", 1)])
        await self._collection.create_index([("entitlements.expires_at", 1)])
        await self.ensure_admin_identity_exists()
        logger.debug("identity_service_started")
