"""
Effective account status.

Storage keeps two columns (``account_status`` and ``timeout_until``); business
logic works with the variant below and only converts at the edges.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple, Union

SUSPENDED_MARKER = "suspended"
NORMAL_MARKER = "normal"


@dataclass(frozen=True)
class Normal:
    kind = "normal"


@dataclass(frozen=True)
class TimedOut:
    until: datetime
    kind = "timed_out"


@dataclass(frozen=True)
class Suspended:
    kind = "suspended"


AccountStatus = Union[Normal, TimedOut, Suspended]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_record(
    account_status: Optional[str],
    timeout_until: Optional[datetime],
    now: Optional[datetime] = None,
) -> AccountStatus:
    now = as_utc(now) or utcnow()
    until = as_utc(timeout_until)
    if until is not None:
        # An expired timeout is Normal even while the marker still says suspended
        return TimedOut(until) if until > now else Normal()
    if account_status == SUSPENDED_MARKER:
        return Suspended()
    return Normal()


def to_record(status: AccountStatus) -> Tuple[str, Optional[datetime]]:
    if isinstance(status, TimedOut):
        return SUSPENDED_MARKER, as_utc(status.until)
    if isinstance(status, Suspended):
        return SUSPENDED_MARKER, None
    return NORMAL_MARKER, None


def effective_status(user, now: Optional[datetime] = None) -> AccountStatus:
    return from_record(user.account_status, user.timeout_until, now)


def is_blocked(user, now: Optional[datetime] = None) -> bool:
    return not isinstance(effective_status(user, now), Normal)


def apply(user, status: AccountStatus) -> None:
    """Write ``status`` onto the two persisted columns of ``user``."""
    user.account_status, user.timeout_until = to_record(status)


def describe(status: AccountStatus) -> str:
    if isinstance(status, TimedOut):
        return f"Account timed out until {status.until.strftime('%Y-%m-%d %H:%M UTC')}."
    if isinstance(status, Suspended):
        return "Account suspended. Contact administration."
    return "Account in good standing."
