"""Renewal threshold evaluation."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass
class RenewalStatus:
    """Where a certificate stands relative to its renewal threshold."""

    not_after: datetime
    days_remaining: int
    days_until_renewal: int
    renewal_due: bool

    def to_dict(self) -> dict:
        return {
            "not_after": self.not_after.isoformat(),
            "days_remaining": self.days_remaining,
            "days_until_renewal": self.days_until_renewal,
            "renewal_due": self.renewal_due,
        }


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def check_expiration(
    threshold: int, not_after: datetime, now: Optional[datetime] = None,
) -> RenewalStatus:
    """Compute the renewal status of a certificate expiring at ``not_after``.

    Renewal is due once the whole days remaining drop to ``threshold`` or
    below. Naive datetimes are taken as UTC.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    not_after = _as_utc(not_after)

    days_remaining = math.floor((not_after - now).total_seconds() / 86400)
    days_until_renewal = days_remaining - threshold
    return RenewalStatus(
        not_after=not_after,
        days_remaining=days_remaining,
        days_until_renewal=days_until_renewal,
        renewal_due=days_until_renewal < 1,
    )
