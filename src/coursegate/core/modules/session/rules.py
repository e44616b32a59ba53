"""Pure session decisions. Callers hold the identity lock and persist the outcome."""

from datetime import datetime, timedelta

from coursegate.core.modules.identity.models import Identity
from coursegate.core.modules.session.models import LoginConflict, SessionCheck


def is_stale(identity: Identity, current: datetime, timeout: timedelta) -> bool:
    session = identity.active_session
    return session is None or current - session.last_activity_at > timeout


def check_conflict(identity: Identity, fingerprint: str, current: datetime, timeout: timedelta) -> LoginConflict | None:
    """Return the conflicting session if a different device is online and still fresh."""
    session = identity.active_session
    if not identity.is_online or session is None:
        return None
    if session.device_fingerprint == fingerprint:
        return None
    if is_stale(identity, current, timeout):
        return None
    return LoginConflict(
        active_device_description=session.device_description,
        login_at=session.login_at,
        last_activity_at=session.last_activity_at,
        location=session.location.city,
    )


def check_session(identity: Identity, fingerprint: str, current: datetime, timeout: timedelta) -> SessionCheck:
    """Decide whether a request may continue on the stored session.

    Device mismatch is checked before timeout; both outcomes require the
    caller to clear the session.
    """
    session = identity.active_session
    if not identity.is_online or session is None:
        return SessionCheck.NO_SESSION
    if session.device_fingerprint != fingerprint:
        return SessionCheck.DEVICE_MISMATCH
    if is_stale(identity, current, timeout):
        return SessionCheck.TIMEOUT
    return SessionCheck.OK
