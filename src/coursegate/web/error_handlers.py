import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from coursegate.errors import (
    AccessDeniedError,
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    EntitlementExpiredError,
    NotFoundError,
    SessionInvalidError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def create_json_error_response(
    status_code: int, message: str, error_type: str | None = None, details: dict[str, Any] | None = None
) -> JSONResponse:
    """Create JSON error response with optional type and details for machine parsing."""
    content: dict[str, Any] = {"message": message}
    if error_type:
        content["type"] = error_type
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    details: dict[str, Any] | None = None
    if isinstance(exc, SessionInvalidError):
        status_code = 401
        error_type = exc.code.lower()
    elif isinstance(exc, AuthenticationError):
        status_code = 401
        error_type = "authentication_error"
    elif isinstance(exc, EntitlementExpiredError):
        status_code = 403
        error_type = "course_expired" if exc.granted_at else "not_enrolled"
        if exc.granted_at:
            details = {
                "granted_at": exc.granted_at.isoformat(),
                "expires_at": exc.expires_at.isoformat() if exc.expires_at else None,
            }
    elif isinstance(exc, AccessDeniedError):
        status_code = 403
        error_type = "access_denied"
    elif isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, ConflictError):
        status_code = 409
        error_type = "conflict"
        details = exc.details
    elif isinstance(exc, AccountLockedError):
        status_code = 423
        error_type = "account_locked"
        details = {"retry_after_minutes": exc.retry_after_minutes}
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    else:
        # Default for any other UserError subclass
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type, details=details)


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
