from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field

from coursegate.core.db import MongoModel
from coursegate.core.modules.entitlement.models import Entitlement, EntitlementView
from coursegate.core.modules.session.models import ActiveSession
from coursegate.utils import now


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"
    INSTRUCTOR = "instructor"


class IdentityStatus(StrEnum):
    ACTIVE = "active"
    BLOCKED = "blocked"
    REMOVED = "removed"  # Terminal; email is rewritten to free the unique index


class LoginAttempts(BaseModel):
    count: int = 0
    last_attempt_at: datetime | None = None
    locked_until: datetime | None = None


class Identity(MongoModel):
    """User account aggregate owning the active session and course entitlements.

    Indexed on email - unique.
    """

    name: str
    email: str
    password_hash: str  # bcrypt hash
    role: Role = Role.USER
    status: IdentityStatus = IdentityStatus.ACTIVE
    is_online: bool = False
    active_session: ActiveSession | None = None
    last_login_at: datetime | None = None
    login_attempts: LoginAttempts = Field(default_factory=LoginAttempts)
    entitlements: list[Entitlement] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=now)

    def find_entitlement(self, course_id: UUID) -> Entitlement | None:
        return next((e for e in self.entitlements if e.course_id == course_id), None)


class IdentityView(BaseModel):
    """Identity account information (API representation)."""

    id: UUID = Field(..., description="Identity ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email")
    role: Role = Field(..., description="Role")
    status: IdentityStatus = Field(..., description="Account status")
    is_online: bool = Field(..., description="Whether a session is active")
    last_login_at: datetime | None = Field(None, description="Last successful login")
    entitlements: list[EntitlementView] = Field(default_factory=list, description="Course entitlements")

    @classmethod
    def from_domain(cls, identity: Identity) -> "IdentityView":
        """Create view model from domain model."""
        return cls(
            id=identity.id,
            name=identity.name,
            email=identity.email,
            role=identity.role,
            status=identity.status,
            is_online=identity.is_online,
            last_login_at=identity.last_login_at,
            entitlements=[EntitlementView.from_domain(e) for e in identity.entitlements],
        )


class AuthResult(BaseModel):
    """Successful login or registration (API representation)."""

    token: str = Field(..., description="Bearer access token for subsequent requests")
    session_secret: str = Field(..., description="Secret of the session bound to this device")
    device_description: str = Field(..., description="Device the session is bound to")
    login_at: datetime = Field(..., description="Session start")
    identity: IdentityView = Field(..., description="Authenticated identity")
    active_entitlements: list[EntitlementView] = Field(default_factory=list, description="Courses currently accessible")
