from uuid import UUID

from coursegate.core.core import Service
from coursegate.core.modules.access.models import AuthContext
from coursegate.core.modules.device.fingerprint import fingerprint
from coursegate.core.modules.entitlement.models import EntitlementAccess
from coursegate.core.modules.identity.models import Identity, IdentityStatus, Role
from coursegate.core.modules.session.models import SessionCheck
from coursegate.core.modules.token.jwt import decode_access_token
from coursegate.errors import AccessDeniedError, AuthenticationError, EntitlementExpiredError, NotFoundError, SessionInvalidError

SESSION_ERROR_MESSAGES = {
    SessionCheck.NO_SESSION: "Session expired - not logged in",
    SessionCheck.DEVICE_MISMATCH: "Session invalid - please sign in again",
    SessionCheck.TIMEOUT: "Session expired due to inactivity",
}


class AccessService(Service):
    async def ensure_authenticated(self, auth: AuthContext) -> Identity:
        """Resolve the bearer token and validate the session for this device.

        Raises SessionInvalidError with the session outcome; the session is
        already cleared for DEVICE_MISMATCH and TIMEOUT.
        """
        config = self.core.config
        identity_id = decode_access_token(auth.token, config.secret_key, config.jwt_algorithm)
        try:
            identity = await self.core.services.identity.get_identity(identity_id)
        except NotFoundError as e:
            raise AuthenticationError("Identity not found") from e

        self._ensure_usable(identity)
        result, identity = await self.core.services.session.validate(identity.id, fingerprint(auth.device))
        if result != SessionCheck.OK:
            raise SessionInvalidError(result.value, SESSION_ERROR_MESSAGES[result])
        return identity

    async def ensure_admin(self, auth: AuthContext) -> Identity:
        identity = await self.ensure_authenticated(auth)
        if identity.role != Role.ADMIN:
            raise AccessDeniedError("Admin privileges required")
        return identity

    async def ensure_course_access(self, identity: Identity, course_id: UUID) -> EntitlementAccess:
        """Raise EntitlementExpiredError unless the identity holds live access to the course."""
        access = await self.core.services.entitlement.get_course_access(identity.id, course_id)
        if access.granted_at is None:
            raise EntitlementExpiredError("You are not enrolled in this course")
        if access.expired:
            raise EntitlementExpiredError("Course access has expired", access.granted_at, access.expires_at)
        return access

    @staticmethod
    def _ensure_usable(identity: Identity) -> None:
        if identity.status == IdentityStatus.REMOVED:
            raise AuthenticationError("Identity not found")
        if identity.status == IdentityStatus.BLOCKED:
            raise AccessDeniedError("Account is blocked")
