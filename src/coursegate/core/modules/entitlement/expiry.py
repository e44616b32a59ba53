"""Pure entitlement expiry rules over an identity's embedded entitlement list."""

import math
from datetime import datetime, timedelta
from uuid import UUID

from coursegate.core.modules.entitlement.models import Entitlement, ExpiryStats
from coursegate.utils import add_months


def new_entitlement(course_id: UUID, current: datetime, window_days: int) -> Entitlement:
    return Entitlement(course_id=course_id, granted_at=current, expires_at=current + timedelta(days=window_days))


def is_lapsed(entitlement: Entitlement, current: datetime) -> bool:
    """Live expiry check; the cached flag alone is never trusted to mean active."""
    return entitlement.expired or current > entitlement.expires_at


def is_expired(entitlements: list[Entitlement], course_id: UUID, current: datetime) -> bool:
    """True if there is no entitlement for the course or it has lapsed."""
    entitlement = next((e for e in entitlements if e.course_id == course_id), None)
    return entitlement is None or is_lapsed(entitlement, current)


def list_active(entitlements: list[Entitlement], current: datetime) -> list[Entitlement]:
    return [e for e in entitlements if not is_lapsed(e, current)]


def sweep_expired(entitlements: list[Entitlement], current: datetime) -> int:
    """Flip the cached flag on lapsed entitlements; return how many changed (0 means no write needed)."""
    changed = 0
    for entitlement in entitlements:
        if not entitlement.expired and current > entitlement.expires_at:
            entitlement.expired = True
            changed += 1
    return changed


def extend(entitlement: Entitlement, months: int) -> datetime:
    """Advance expiry from its current value (not from now) and reactivate."""
    entitlement.expires_at = add_months(entitlement.expires_at, months)
    entitlement.expired = False
    return entitlement.expires_at


def days_remaining(entitlement: Entitlement, current: datetime) -> int:
    return math.ceil((entitlement.expires_at - current) / timedelta(days=1))


def is_expiring_within(entitlement: Entitlement, current: datetime, days: int) -> bool:
    return not entitlement.expired and current <= entitlement.expires_at <= current + timedelta(days=days)


def summarize(entitlements: list[Entitlement], current: datetime) -> ExpiryStats:
    stats = ExpiryStats()
    for entitlement in entitlements:
        stats.total_entitlements += 1
        if entitlement.expired:
            stats.expired += 1
            continue
        if entitlement.expires_at > current:
            stats.active += 1
            if entitlement.expires_at <= current + timedelta(days=7):
                stats.expiring_in_7_days += 1
    return stats
