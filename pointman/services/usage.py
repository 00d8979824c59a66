"""Usage service - quota checks and counter updates.

Checks are reset-aware (pointman.quotas) and use the entitlement
resolved at call time, so neither waits for the scheduler.
Counter writes are single-field UPDATEs under the usage row lock.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from pointman.entitlements import Limits, resolve, suggest_upgrade
from pointman.exceptions import QuotaExceeded
from pointman.models import UsageTracking
from pointman.quotas import (
    COUNTERS,
    UsageReport,
    bucket_start,
    can_perform,
    counter_for,
    effective_count,
    is_stale,
    remaining,
)
from pointman.services.actors import get_user
from pointman.services.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageStats:
    """Every quota dimension of one user at one instant."""

    effective_plan: str
    stored_plan: str
    limits: Limits
    usage: dict[str, UsageReport]


class UsageService:
    """
    Service for quota-gated actions.

    Uses @classmethod for extensibility (consistent with the other services).

    Typical flow in a quota-gated endpoint:
        UsageService.check_and_increment(user.pk, ActionType.EXPENSE)
        ... create the expense ...

    Resources counted in totals are released with decrement():
        UsageService.decrement(user.pk, ActionType.PARTNER)
    """

    @classmethod
    def check(cls, user_id, action: str, now: datetime | None = None) -> bool:
        """True if the user may perform ``action`` now (does not count it)."""
        now = now or timezone.now()
        counter_for(action)
        subscription = SubscriptionService.get(user_id)
        usage = cls._get_usage(user_id, now)
        return can_perform(usage, resolve(subscription, now).limits, action, now)

    @classmethod
    def report(cls, user_id, action: str, now: datetime | None = None) -> UsageReport:
        """Used / limit / remaining for one action."""
        now = now or timezone.now()
        counter_for(action)
        subscription = SubscriptionService.get(user_id)
        usage = cls._get_usage(user_id, now)
        return remaining(usage, resolve(subscription, now).limits, action, now)

    @classmethod
    def stats(cls, user_id, now: datetime | None = None) -> UsageStats:
        """Usage reports for every action plus effective and stored plan."""
        now = now or timezone.now()
        subscription = SubscriptionService.get(user_id)
        usage = cls._get_usage(user_id, now)
        entitlement = resolve(subscription, now)
        return UsageStats(
            effective_plan=entitlement.effective_plan,
            stored_plan=subscription.plan,
            limits=entitlement.limits,
            usage={
                str(action): remaining(usage, entitlement.limits, action, now)
                for action in COUNTERS
            },
        )

    @classmethod
    def check_and_increment(cls, user_id, action: str, now: datetime | None = None) -> UsageReport:
        """
        Count ``action`` if the plan allows it, atomically.

        The check and the increment run under the usage row lock, so two
        concurrent requests cannot both take the last slot.

        Returns:
            UsageReport after the increment

        Raises:
            ValidationError: Unknown action
            NotFound: No subscription for the user
            QuotaExceeded: Limit reached (data: usage report, plan, upgrade hint)
        """
        now = now or timezone.now()
        counter = counter_for(action)

        with transaction.atomic():
            usage = cls._get_usage_for_update(user_id, now)
            subscription = SubscriptionService.get(user_id)
            entitlement = resolve(subscription, now)

            if not can_perform(usage, entitlement.limits, action, now):
                report = remaining(usage, entitlement.limits, action, now)
                upgrade = suggest_upgrade(entitlement.effective_plan, counter.field)
                logger.info(
                    "Quota reached for user=%s action=%s plan=%s (%s/%s)",
                    user_id, action, entitlement.effective_plan, report.used, report.limit,
                )
                raise QuotaExceeded(
                    "QUOTA_EXCEEDED",
                    cls._limit_message(action, report, counter.period, upgrade),
                    action=str(action),
                    current_plan=str(entitlement.effective_plan),
                    usage=report.as_dict(),
                    upgrade_to=str(upgrade.code) if upgrade else None,
                )

            cls._apply_increment(usage, counter, now)
            return remaining(usage, entitlement.limits, action, now)

    @classmethod
    def increment(cls, user_id, action: str, now: datetime | None = None) -> int:
        """
        Count one ``action`` without checking the limit.

        A counter whose bucket rolled over restarts at 1.

        Returns:
            New counter value
        """
        now = now or timezone.now()
        counter = counter_for(action)
        with transaction.atomic():
            usage = cls._get_usage_for_update(user_id, now)
            cls._apply_increment(usage, counter, now)
        return getattr(usage, counter.field)

    @classmethod
    def decrement(cls, user_id, action: str, now: datetime | None = None) -> int:
        """
        Release one ``action`` (e.g. a partner was removed).

        Floors at zero: a decrement on an empty or rolled-over counter
        is a no-op.

        Returns:
            New effective counter value
        """
        now = now or timezone.now()
        counter = counter_for(action)
        with transaction.atomic():
            usage = cls._get_usage_for_update(user_id, now)
            if effective_count(usage, action, now) > 0:
                UsageTracking.objects.filter(
                    pk=usage.pk, **{f"{counter.field}__gt": 0}
                ).update(**{counter.field: F(counter.field) - 1})
                usage.refresh_from_db(fields=[counter.field])
            return effective_count(usage, action, now)

    @classmethod
    def _apply_increment(cls, usage: UsageTracking, counter, now: datetime) -> None:
        if counter.reset_field and is_stale(getattr(usage, counter.reset_field), counter.period, now):
            UsageTracking.objects.filter(pk=usage.pk).update(
                **{counter.field: 1, counter.reset_field: bucket_start(counter.period, now)}
            )
            fields = [counter.field, counter.reset_field]
        else:
            UsageTracking.objects.filter(pk=usage.pk).update(
                **{counter.field: F(counter.field) + 1}
            )
            fields = [counter.field]
        usage.refresh_from_db(fields=fields)

    @classmethod
    def _get_usage(cls, user_id, now: datetime) -> UsageTracking:
        usage = UsageTracking.objects.filter(user_id=user_id).first()
        if usage is None:
            usage = cls._create_usage(user_id, now)
        return usage

    @classmethod
    def _get_usage_for_update(cls, user_id, now: datetime) -> UsageTracking:
        """Usage row with row-level lock. MUST be called inside transaction.atomic()."""
        try:
            return UsageTracking.objects.select_for_update().get(user_id=user_id)
        except UsageTracking.DoesNotExist:
            cls._create_usage(user_id, now)
            return UsageTracking.objects.select_for_update().get(user_id=user_id)

    @classmethod
    def _create_usage(cls, user_id, now: datetime) -> UsageTracking:
        """Lazily create counters for accounts that predate usage tracking."""
        user = get_user(user_id)
        usage, _ = UsageTracking.objects.get_or_create(
            user=user,
            defaults={
                "voice_inputs_reset_at": now,
                "expenses_reset_at": now,
                "revenues_reset_at": now,
            },
        )
        return usage

    @staticmethod
    def _limit_message(action: str, report: UsageReport, period: str, upgrade) -> str:
        per = {"daily": " per day", "monthly": " per month"}.get(period, "")
        message = f"{str(action).replace('_', ' ').capitalize()} limit reached ({report.limit}{per})."
        if upgrade is not None:
            message += f" Upgrade to {upgrade.name} for more."
        return message
