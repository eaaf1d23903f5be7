from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from uuid import uuid4


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_midnight(now: datetime) -> datetime:
    """Start of the current day in the server's local timezone."""
    return now.astimezone().replace(hour=0, minute=0, second=0, microsecond=0)


def next_timestamp(now: datetime, previous: datetime) -> datetime:
    # updated_at must move forward even if the clock did not tick.
    if now > previous:
        return now
    return previous + timedelta(microseconds=1)


def _new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class ScamReport:
    phone_number: str
    category: str
    description: str
    call_type: str | None = None
    frequency: str | None = None
    is_verified: bool = False
    report_count: int = 1
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class Dispute:
    scam_report_id: str
    description: str
    verification_info: str | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=utc_now)
