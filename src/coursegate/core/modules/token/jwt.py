"""Signed access tokens (python-jose).

An access token only names the identity. Whether the bearer may proceed is
decided by the session check on every request.
"""

from datetime import timedelta
from typing import Any
from uuid import UUID, uuid4

from jose import JWTError, jwt

from coursegate.errors import AuthenticationError
from coursegate.utils import now


def create_access_token(identity_id: UUID, secret_key: str, algorithm: str, expire_minutes: int) -> str:
    issued_at = now()
    payload: dict[str, Any] = {
        "sub": str(identity_id),
        "jti": str(uuid4()),
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expire_minutes),
        "type": "access",
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str) -> UUID:
    """Return the identity id carried by a valid access token."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")
    try:
        return UUID(payload["sub"])
    except (KeyError, ValueError) as e:
        raise AuthenticationError("Invalid or expired token") from e
