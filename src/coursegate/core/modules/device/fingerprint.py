"""Device fingerprinting and user-agent heuristics.

The fingerprint is a best-effort correlation key for a browser/device
combination, not a device identity. Collisions and spoofing are accepted.
"""

import hashlib

from coursegate.core.modules.device.models import DeviceAttributes, DeviceInfo

SEPARATOR = "|"

_FINGERPRINT_FIELDS = (
    "user_agent",
    "platform",
    "browser",
    "screen_resolution",
    "timezone",
    "language",
    "color_depth",
    "hardware_concurrency",
    "max_touch_points",
    "webgl",
    "canvas",
)


def fingerprint(attributes: DeviceAttributes) -> str:
    """Return a SHA-256 hex digest of the attributes in fixed order."""
    # Escape the separator so "a|b" + "" and "a" + "b|" cannot collide
    parts = [getattr(attributes, name).replace("\\", "\\\\").replace(SEPARATOR, "\\" + SEPARATOR) for name in _FINGERPRINT_FIELDS]
    return hashlib.sha256(SEPARATOR.join(parts).encode("utf-8")).hexdigest()


def parse_user_agent(user_agent: str) -> tuple[str, str]:
    """Guess (browser, platform) from a user-agent string. Unknown parts are "unknown"."""
    ua = user_agent.lower()

    browser = "unknown"
    if "edg" in ua:
        browser = "edge"
    elif "opera" in ua or "opr/" in ua:
        browser = "opera"
    elif "chrome" in ua:
        browser = "chrome"
    elif "firefox" in ua:
        browser = "firefox"
    elif "safari" in ua:
        browser = "safari"

    platform = "unknown"
    if "windows" in ua:
        platform = "windows"
    elif "android" in ua:
        platform = "android"
    elif "iphone" in ua or "ipad" in ua or "ipod" in ua:
        platform = "ios"
    elif "mac" in ua:
        platform = "macos"
    elif "linux" in ua:
        platform = "linux"

    return browser, platform


def with_user_agent_defaults(attributes: DeviceAttributes, user_agent: str) -> DeviceAttributes:
    """Fill user_agent, browser and platform from the request header where the client left them empty."""
    ua = attributes.user_agent or user_agent
    browser, platform = parse_user_agent(ua)
    return attributes.model_copy(
        update={
            "user_agent": ua,
            "browser": attributes.browser or browser,
            "platform": attributes.platform or platform,
        }
    )


def is_mobile(info: DeviceAttributes | DeviceInfo) -> bool:
    ua = info.user_agent.lower()
    platform = info.platform.lower()
    return (
        "android" in platform
        or "ios" in platform
        or any(marker in ua for marker in ("mobile", "android", "iphone", "ipad", "ipod"))
    )


def device_class(info: DeviceAttributes | DeviceInfo) -> str:
    """Classify as tablet, mobile or desktop by substring matching."""
    ua = info.user_agent.lower()
    if "tablet" in ua or "ipad" in ua:
        return "tablet"
    if is_mobile(info):
        return "mobile"
    return "desktop"


def describe(info: DeviceAttributes | DeviceInfo) -> str:
    """Human-readable "Browser on Platform (class)" label for display and audit."""
    browser = info.browser or "unknown browser"
    platform = info.platform or "unknown platform"
    return f"{browser[:1].upper()}{browser[1:]} on {platform[:1].upper()}{platform[1:]} ({device_class(info)})"
