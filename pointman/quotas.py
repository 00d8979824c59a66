"""
Usage tracking rules - which counter an action uses and whether it may run.

Pure functions: the counter row and the resolved limits come in, a
decision comes out. Buckets are calendar days and months in the local
time zone: a counter last reset before the current bucket opened reads
as zero, whether or not the scheduler has already zeroed it.
"""

from dataclasses import dataclass
from datetime import datetime

from django.db import models
from django.utils.translation import gettext_lazy as _

from pointman.entitlements import UNLIMITED, Limit, Limits
from pointman.exceptions import ValidationError
from pointman.utils import local_day_start, local_month_start


class ActionType(models.TextChoices):
    """Quota-gated actions."""

    VOICE_INPUT = "voice_input", _("Voice input")
    EXPENSE = "expense", _("Expense")
    REVENUE = "revenue", _("Revenue")
    SUPERVISOR = "supervisor", _("Supervisor")
    PROJECT = "project", _("Project")
    PARTNER = "partner", _("Partner")


DAILY = "daily"
MONTHLY = "monthly"
TOTAL = "total"


@dataclass(frozen=True)
class Counter:
    """Where an action is counted. ``field`` doubles as the Limits dimension."""

    field: str
    period: str
    reset_field: str | None = None


COUNTERS: dict[str, Counter] = {
    ActionType.VOICE_INPUT: Counter("voice_inputs", DAILY, "voice_inputs_reset_at"),
    ActionType.EXPENSE: Counter("expenses", DAILY, "expenses_reset_at"),
    ActionType.REVENUE: Counter("revenues", MONTHLY, "revenues_reset_at"),
    ActionType.SUPERVISOR: Counter("supervisors", TOTAL),
    ActionType.PROJECT: Counter("projects", TOTAL),
    ActionType.PARTNER: Counter("partners", TOTAL),
}


@dataclass(frozen=True)
class UsageReport:
    used: int
    limit: Limit
    remaining: Limit

    @property
    def unlimited(self) -> bool:
        return self.limit is UNLIMITED

    def as_dict(self) -> dict:
        return {
            "used": self.used,
            "limit": None if self.limit is UNLIMITED else self.limit,
            "remaining": None if self.remaining is UNLIMITED else self.remaining,
        }


def counter_for(action: str) -> Counter:
    try:
        return COUNTERS[action]
    except KeyError:
        raise ValidationError("INVALID_ACTION", action=action, allowed=list(COUNTERS))


def bucket_start(period: str, now: datetime) -> datetime | None:
    """Opening instant of the bucket holding ``now``: local midnight, or the 1st of the month."""
    if period == DAILY:
        return local_day_start(now)
    if period == MONTHLY:
        return local_month_start(now)
    return None


def is_stale(reset_at: datetime, period: str, now: datetime) -> bool:
    """True when the counter was last reset in an earlier bucket."""
    start = bucket_start(period, now)
    return start is not None and reset_at < start


def effective_count(usage, action: str, now: datetime) -> int:
    """Counter value as of ``now`` (zero once its bucket has rolled over)."""
    counter = counter_for(action)
    if counter.reset_field and is_stale(getattr(usage, counter.reset_field), counter.period, now):
        return 0
    return getattr(usage, counter.field)


def can_perform(usage, limits: Limits, action: str, now: datetime) -> bool:
    limit = limits.get(counter_for(action).field)
    if limit is UNLIMITED:
        return True
    return effective_count(usage, action, now) < limit


def remaining(usage, limits: Limits, action: str, now: datetime) -> UsageReport:
    used = effective_count(usage, action, now)
    limit = limits.get(counter_for(action).field)
    if limit is UNLIMITED:
        return UsageReport(used=used, limit=UNLIMITED, remaining=UNLIMITED)
    return UsageReport(used=used, limit=limit, remaining=max(0, limit - used))
