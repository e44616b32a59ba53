"""Client-reported device attributes."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeviceAttributes(BaseModel):
    """Flat record of browser/device characteristics reported by the client.

    Every attribute is optional and normalised to a string, so fingerprinting
    never fails on partial input. `webgl` and `canvas` are opaque rendering
    signatures and are not validated.
    """

    user_agent: str = Field("", alias="userAgent")
    platform: str = ""
    browser: str = ""
    screen_resolution: str = Field("", alias="screenResolution")
    timezone: str = ""
    language: str = ""
    color_depth: str = Field("", alias="colorDepth")
    hardware_concurrency: str = Field("", alias="hardwareConcurrency")
    max_touch_points: str = Field("", alias="maxTouchPoints")
    webgl: str = ""
    canvas: str = ""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_to_str(cls, value: object) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)


class DeviceInfo(BaseModel):
    """Display subset of device attributes stored with a session (never used for authorization)."""

    user_agent: str = ""
    platform: str = ""
    browser: str = ""
    screen_resolution: str = ""
    timezone: str = ""
    language: str = ""

    @classmethod
    def from_attributes(cls, attributes: DeviceAttributes) -> "DeviceInfo":
        return cls(
            user_agent=attributes.user_agent,
            platform=attributes.platform,
            browser=attributes.browser,
            screen_resolution=attributes.screen_resolution,
            timezone=attributes.timezone,
            language=attributes.language,
        )
