import json
from typing import Annotated, Any, cast

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coursegate.app import App
from coursegate.core.modules.access.models import AuthContext
from coursegate.core.modules.device.fingerprint import with_user_agent_defaults
from coursegate.core.modules.device.models import DeviceAttributes
from coursegate.errors import AuthenticationError

DEVICE_INFO_HEADER = "X-Device-Info"

bearer_scheme = HTTPBearer(auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


def device_from_request(request: Request, reported: dict[str, Any] | None = None) -> DeviceAttributes:
    """Build device attributes from the reported payload (body or X-Device-Info header) and User-Agent."""
    if reported is None:
        raw = request.headers.get(DEVICE_INFO_HEADER)
        if raw:
            try:
                parsed = json.loads(raw)
            except ValueError:
                parsed = None
            reported = parsed if isinstance(parsed, dict) else None
    attributes = DeviceAttributes.model_validate(reported or {})
    return with_user_agent_defaults(attributes, request.headers.get("user-agent", ""))


def client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "0.0.0.0"  # noqa: S104


async def get_auth(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> AuthContext:
    """Bearer token and device attributes of the current request; the session is validated by the App."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("Access token is required")
    return AuthContext(token=credentials.credentials, device=device_from_request(request))


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
AuthDep = Annotated[AuthContext, Depends(get_auth)]
