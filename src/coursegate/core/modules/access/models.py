from pydantic import BaseModel

from coursegate.core.modules.device.models import DeviceAttributes


class AuthContext(BaseModel):
    """Bearer token plus the device attributes of the current request."""

    token: str
    device: DeviceAttributes
