"""
Scheduler jobs - idempotent, set-based state reconciliation.

Each job takes the instant to reconcile against and returns how many
records (or counters) it rewrote. Running a job twice for the same
instant changes nothing the second time, so they are safe to invoke out
of schedule (see the pointman_jobs management command).

Requests never depend on these jobs having run: entitlements and
quota checks resolve expiry and rollover on read.
"""

import logging
from datetime import datetime

from django.db import transaction
from django.utils import timezone

from pointman.models import Plan, Subscription, SubscriptionStatus, UsageTracking
from pointman.quotas import COUNTERS, DAILY, MONTHLY, bucket_start
from pointman.signals import free_trial_expired, subscription_expired

logger = logging.getLogger(__name__)


def expire_paid_subscriptions(now: datetime | None = None) -> int:
    """Paid plans past their end date fall back to free (status=expired)."""
    now = now or timezone.now()
    with transaction.atomic():
        count = (
            Subscription.objects.exclude(plan=Plan.FREE)
            .exclude(status=SubscriptionStatus.EXPIRED)
            .filter(end_date__isnull=False, end_date__lt=now)
            .update(
                plan=Plan.FREE,
                status=SubscriptionStatus.EXPIRED,
                end_date=None,
                auto_renew=False,
                updated_at=now,
            )
        )
    if count:
        transaction.on_commit(
            lambda: subscription_expired.send(sender=Subscription, count=count, now=now)
        )
    logger.info("expire_paid_subscriptions: %d subscription(s) expired", count)
    return count


def expire_free_trials(now: datetime | None = None) -> int:
    """Lapsed trials become used. The stored plan is left untouched."""
    now = now or timezone.now()
    with transaction.atomic():
        count = Subscription.objects.filter(
            trial_active=True,
            trial_end__lt=now,
        ).update(trial_active=False, trial_used=True, updated_at=now)
    if count:
        transaction.on_commit(
            lambda: free_trial_expired.send(sender=Subscription, count=count, now=now)
        )
    logger.info("expire_free_trials: %d trial(s) expired", count)
    return count


def _reset_period(period: str, now: datetime) -> int:
    # reset_at holds the bucket start, never the run time
    start = bucket_start(period, now)
    total = 0
    with transaction.atomic():
        for counter in COUNTERS.values():
            if counter.period != period:
                continue
            total += UsageTracking.objects.filter(
                **{f"{counter.reset_field}__lt": start}
            ).update(**{counter.field: 0, counter.reset_field: start, "updated_at": now})
    return total


def reset_daily_counters(now: datetime | None = None) -> int:
    """Zero daily counters last reset before local midnight."""
    now = now or timezone.now()
    count = _reset_period(DAILY, now)
    logger.info("reset_daily_counters: %d counter(s) reset", count)
    return count


def reset_monthly_counters(now: datetime | None = None) -> int:
    """Zero monthly counters last reset before the 1st of the month."""
    now = now or timezone.now()
    count = _reset_period(MONTHLY, now)
    logger.info("reset_monthly_counters: %d counter(s) reset", count)
    return count


def reset_counters(now: datetime | None = None) -> int:
    """Daily and monthly resets together."""
    now = now or timezone.now()
    return reset_daily_counters(now) + reset_monthly_counters(now)
