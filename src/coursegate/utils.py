import re
from datetime import UTC, datetime

from dateutil.relativedelta import relativedelta

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]{2,}$")


def is_email(value: str) -> bool:
    return bool(EMAIL_RE.fullmatch(value))


def now() -> datetime:
    return datetime.now(UTC)


def add_months(value: datetime, months: int) -> datetime:
    """Shift a timestamp by whole calendar months, clamping to the last day of short months."""
    return value + relativedelta(months=months)
