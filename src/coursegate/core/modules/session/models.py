"""Device-bound session models."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field

from coursegate.core.modules.device.models import DeviceInfo


class Location(BaseModel):
    """Approximate location reported at login."""

    country: str = "Unknown"
    city: str = "Unknown"


class ActiveSession(BaseModel):
    """The single login record embedded in an identity.

    Present only while the identity is online. `session_secret` is minted at
    login and dropped with the rest of the record on logout.
    """

    device_fingerprint: str
    device_info: DeviceInfo = Field(default_factory=DeviceInfo)
    device_description: str
    login_at: datetime
    last_activity_at: datetime
    source_address: str = ""
    location: Location = Field(default_factory=Location)
    session_secret: str


class SessionCheck(StrEnum):
    """Outcome of validating a request against the stored session."""

    OK = "ok"
    NO_SESSION = "NO_SESSION"
    DEVICE_MISMATCH = "DEVICE_MISMATCH"
    TIMEOUT = "TIMEOUT"


class LoginConflict(BaseModel):
    """Another device still holds a fresh session."""

    active_device_description: str = Field(..., description="Device currently logged in")
    login_at: datetime = Field(..., description="When the other device logged in")
    last_activity_at: datetime = Field(..., description="Last activity on the other device")
    location: str = Field(..., description="City of the other device, if known")


class ActiveSessionView(BaseModel):
    """Admin projection of one online identity (API representation)."""

    identity_id: UUID = Field(..., description="Identity ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email")
    role: str = Field(..., description="Role")
    device_description: str = Field(..., description="Browser, platform and device class")
    login_at: datetime = Field(..., description="Login time")
    last_activity_at: datetime = Field(..., description="Last authenticated request")
    source_address: str = Field(..., description="Client address at login")
    location: Location = Field(..., description="Approximate location")
