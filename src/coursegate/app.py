from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from uuid import UUID

import structlog

from coursegate.config import Config
from coursegate.core.core import Core
from coursegate.core.modules.access.models import AuthContext
from coursegate.core.modules.device.fingerprint import describe, fingerprint
from coursegate.core.modules.device.models import DeviceAttributes
from coursegate.core.modules.entitlement.models import EntitlementAccess, EntitlementView, ExpiryReport, GrantResult
from coursegate.core.modules.identity.models import AuthResult, Identity, IdentityStatus, IdentityView
from coursegate.core.modules.notification.models import ExpiryNotice, NotificationView
from coursegate.core.modules.scheduler.models import SweepSummary
from coursegate.core.modules.session.models import ActiveSessionView, Location
from coursegate.core.modules.token.jwt import create_access_token
from coursegate.errors import (
    AccessDeniedError,
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from coursegate.utils import now

logger = structlog.get_logger(__name__)


class App:
    """Facade for all application operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config, core: Core | None = None) -> None:
        self._core = core or Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Authentication ===
    async def register(
        self, name: str, email: str, password: str, device: DeviceAttributes, source_address: str, location: Location | None
    ) -> AuthResult:
        """Create an identity and log it in on the registering device."""
        identity = await self._core.services.identity.register(name, email, password)
        return await self._start_session(identity, device, source_address, location)

    async def login(
        self,
        email: str,
        password: str,
        device: DeviceAttributes,
        source_address: str,
        location: Location | None = None,
        force_logout: bool = False,
    ) -> AuthResult:
        """Verify credentials and bind a new session to this device.

        Raises ConflictError while another device holds a fresh session, unless
        force_logout is set, in which case that session is cleared first.
        """
        services = self._core.services
        identity = await services.identity.find_by_email(email)
        if identity is None or identity.status == IdentityStatus.REMOVED:
            raise AuthenticationError("Invalid email or password")
        if identity.status == IdentityStatus.BLOCKED:
            raise AccessDeniedError("Account is blocked. Please contact administrator.")

        locked_minutes = services.identity.lock_minutes_remaining(identity)
        if locked_minutes:
            raise AccountLockedError(locked_minutes)

        if not await services.identity.verify_credentials(identity, password):
            attempts = await services.identity.record_failed_login(identity.id)
            remaining = max(0, self._core.config.max_login_attempts - attempts.count)
            raise AuthenticationError(f"Invalid email or password ({remaining} attempts remaining)")

        if force_logout:
            await services.session.force_logout(identity.id)
        else:
            conflict = await services.session.get_login_conflict(identity.id, fingerprint(device))
            if conflict is not None:
                raise ConflictError(
                    "User is already logged in on another device",
                    details={
                        "error": "ACTIVE_SESSION_EXISTS",
                        "active_device": conflict.model_dump(mode="json"),
                    },
                )

        return await self._start_session(identity, device, source_address, location)

    async def logout(self, auth: AuthContext) -> None:
        identity = await self._core.services.access.ensure_authenticated(auth)
        await self._core.services.session.logout(identity.id)

    async def get_current_identity(self, auth: AuthContext) -> IdentityView:
        identity = await self._core.services.access.ensure_authenticated(auth)
        return IdentityView.from_domain(identity)

    async def change_password(self, auth: AuthContext, old_password: str, new_password: str) -> None:
        identity = await self._core.services.access.ensure_authenticated(auth)
        await self._core.services.identity.change_password(identity.id, old_password, new_password)

    # === Entitlements ===
    async def get_active_entitlements(self, auth: AuthContext) -> list[EntitlementView]:
        identity = await self._core.services.access.ensure_authenticated(auth)
        entitlements = await self._core.services.entitlement.list_active(identity.id)
        return [EntitlementView.from_domain(e) for e in entitlements]

    async def get_course_access(self, auth: AuthContext, course_id: UUID) -> EntitlementAccess:
        """Course-access check; raises EntitlementExpiredError with the dates when access lapsed."""
        identity = await self._core.services.access.ensure_authenticated(auth)
        return await self._core.services.access.ensure_course_access(identity, course_id)

    # === Notifications ===
    async def get_notifications(self, auth: AuthContext, unread_only: bool = False) -> list[NotificationView]:
        identity = await self._core.services.access.ensure_authenticated(auth)
        notifications = await self._core.services.notification.list_notifications(identity.id, unread_only)
        return [NotificationView.from_domain(n) for n in notifications]

    async def mark_notification_read(self, auth: AuthContext, notification_id: UUID) -> None:
        identity = await self._core.services.access.ensure_authenticated(auth)
        await self._core.services.notification.mark_read(identity.id, notification_id)

    # === Admin ===
    async def list_active_sessions(self, auth: AuthContext) -> list[ActiveSessionView]:
        await self._core.services.access.ensure_admin(auth)
        return await self._core.services.inspector.list_active_sessions()

    async def force_logout_identity(self, auth: AuthContext, identity_id: UUID) -> bool:
        """Clear another identity's session (admin only). Returns whether a session was active."""
        await self._core.services.access.ensure_admin(auth)
        await self._resolve_identity(identity_id)
        return await self._core.services.session.force_logout(identity_id)

    async def toggle_identity_status(self, auth: AuthContext, identity_id: UUID) -> IdentityStatus:
        """Block or unblock an identity (admin only, not self)."""
        admin = await self._core.services.access.ensure_admin(auth)
        if admin.id == identity_id:
            raise ValidationError("You cannot block/unblock yourself")
        await self._resolve_identity(identity_id)
        return await self._core.services.identity.toggle_status(identity_id)

    async def remove_identity(self, auth: AuthContext, identity_id: UUID) -> None:
        """Soft-delete an identity (admin only, not self)."""
        admin = await self._core.services.access.ensure_admin(auth)
        if admin.id == identity_id:
            raise ValidationError("You cannot delete yourself")
        await self._resolve_identity(identity_id)
        await self._core.services.identity.remove(identity_id)

    async def grant_entitlement(
        self, auth: AuthContext, identity_id: UUID, course_id: UUID, window_days: int | None = None
    ) -> EntitlementAccess:
        """Grant course access (admin only). Raises ConflictError if access is already live."""
        await self._core.services.access.ensure_admin(auth)
        await self._resolve_identity(identity_id)
        result = await self._core.services.entitlement.grant(identity_id, course_id, window_days)
        if result == GrantResult.ALREADY_GRANTED:
            raise ConflictError("Course access already granted", details={"error": "ALREADY_GRANTED"})
        return await self._core.services.entitlement.get_course_access(identity_id, course_id)

    async def extend_entitlement(self, auth: AuthContext, identity_id: UUID, course_id: UUID, months: int | None) -> datetime:
        """Extend course access from its current expiry (admin only)."""
        admin = await self._core.services.access.ensure_admin(auth)
        await self._resolve_identity(identity_id)
        expires_at = await self._core.services.entitlement.extend(identity_id, course_id, months)
        if expires_at is None:
            raise NotFoundError(f"Identity '{identity_id}' is not enrolled in course '{course_id}'")
        logger.info("entitlement_extended_by_admin", admin_id=admin.id, identity_id=identity_id, course_id=course_id)
        return expires_at

    async def get_expiry_report(self, auth: AuthContext) -> ExpiryReport:
        await self._core.services.access.ensure_admin(auth)
        return await self._core.services.entitlement.get_expiry_report()

    async def run_expiry_sweep(self, auth: AuthContext) -> SweepSummary:
        await self._core.services.access.ensure_admin(auth)
        return await self._core.services.scheduler.run_expiry_sweep()

    async def run_expiry_warnings(self, auth: AuthContext) -> list[ExpiryNotice]:
        await self._core.services.access.ensure_admin(auth)
        return await self._core.services.scheduler.run_expiry_warnings()

    async def run_session_cleanup(self, auth: AuthContext) -> int:
        await self._core.services.access.ensure_admin(auth)
        return await self._core.services.scheduler.run_session_cleanup()

    # === Private helpers ===
    async def _resolve_identity(self, identity_id: UUID) -> Identity:
        """Resolve identity id to Identity. Raises NotFoundError if not found."""
        return await self._core.services.identity.get_identity(identity_id)

    async def _start_session(
        self, identity: Identity, device: DeviceAttributes, source_address: str, location: Location | None
    ) -> AuthResult:
        services = self._core.services
        config = self._core.config
        session_secret = await services.session.establish(identity.id, device, source_address, location)
        token = create_access_token(identity.id, config.secret_key, config.jwt_algorithm, config.access_token_expire_minutes)
        identity = await services.identity.get_identity(identity.id)
        active = await services.entitlement.list_active(identity.id)
        login_at = identity.active_session.login_at if identity.active_session else now()
        return AuthResult(
            token=token,
            session_secret=session_secret,
            device_description=describe(device),
            login_at=login_at,
            identity=IdentityView.from_domain(identity),
            active_entitlements=[EntitlementView.from_domain(e) for e in active],
        )
