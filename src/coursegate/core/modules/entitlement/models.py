"""Time-bound course entitlements."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class Entitlement(BaseModel):
    """Access grant for one course, embedded in an identity.

    `expired` caches `now > expires_at` for bulk sweeps. Single access checks
    always recompute from `expires_at`.
    """

    course_id: UUID
    granted_at: datetime
    expires_at: datetime
    expired: bool = False
    progress: int = Field(0, ge=0, le=100)

    @model_validator(mode="after")
    def _check_window(self) -> "Entitlement":
        if self.expires_at <= self.granted_at:
            raise ValueError("expires_at must be after granted_at")
        return self


class GrantResult(StrEnum):
    GRANTED = "granted"
    ALREADY_GRANTED = "already_granted"


class EntitlementAccess(BaseModel):
    """Course-access decision for one identity and course."""

    course_id: UUID = Field(..., description="Course ID")
    expired: bool = Field(..., description="True if access is missing or lapsed")
    granted_at: datetime | None = Field(None, description="When access was granted")
    expires_at: datetime | None = Field(None, description="When access ends")
    progress: int = Field(0, description="Course progress (0-100)")


class EntitlementView(BaseModel):
    """Entitlement (API representation)."""

    course_id: UUID = Field(..., description="Course ID")
    granted_at: datetime = Field(..., description="When access was granted")
    expires_at: datetime = Field(..., description="When access ends")
    expired: bool = Field(..., description="Cached expiry flag")
    progress: int = Field(..., description="Course progress (0-100)")

    @classmethod
    def from_domain(cls, entitlement: Entitlement) -> "EntitlementView":
        return cls(
            course_id=entitlement.course_id,
            granted_at=entitlement.granted_at,
            expires_at=entitlement.expires_at,
            expired=entitlement.expired,
            progress=entitlement.progress,
        )


class ExpiringEntitlement(BaseModel):
    """One entitlement that lapses within a warning window."""

    identity_id: UUID
    email: str
    name: str
    course_id: UUID
    expires_at: datetime
    granted_at: datetime
    days_remaining: int
    progress: int


class ExpiryStats(BaseModel):
    total_entitlements: int = 0
    expired: int = 0
    active: int = 0
    expiring_in_7_days: int = 0

    @property
    def expiry_rate(self) -> float:
        """Share of expired entitlements, in percent."""
        if self.total_entitlements == 0:
            return 0.0
        return round(self.expired / self.total_entitlements * 100, 2)


class ExpiryReport(BaseModel):
    statistics: ExpiryStats
    expiry_rate: float
    expiring_in_1_day: list[ExpiringEntitlement]
    expiring_in_7_days: list[ExpiringEntitlement]
    generated_at: datetime
