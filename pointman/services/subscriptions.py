"""Subscription service - account plan lifecycle.

State changes are explicit calls (start, upgrade, cancel) followed by
an explicit pre-persist gate; nothing is mutated implicitly on save().
Expiry rewrites belong to the scheduler jobs (pointman.jobs).
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import IntegrityError, transaction
from django.utils import timezone

from pointman.conf import pointman_settings
from pointman.entitlements import (
    PLAN_CATALOG,
    Entitlement,
    PlanDefinition,
    days_until_expiry,
    held_plan,
    is_expired,
    resolve,
    trial_days_remaining,
    trial_running,
)
from pointman.exceptions import NotFound, ValidationError
from pointman.gates import Gates
from pointman.models import PaymentMethod, Plan, Subscription, SubscriptionStatus, UsageTracking
from pointman.services.actors import get_user
from pointman.signals import subscription_changed
from pointman.utils import shift_months

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionInfo:
    """Subscription facts as of one instant."""

    plan: str
    effective_plan: str
    status: str
    start_date: datetime
    end_date: datetime | None
    auto_renew: bool
    is_expired: bool
    days_until_expiry: int | None
    trial_running: bool
    trial_used: bool
    trial_end: datetime | None
    trial_days_remaining: int


class SubscriptionService:
    """
    Service for subscription operations.

    Uses @classmethod for extensibility (consistent with the other services).
    """

    @classmethod
    def start(cls, user_id, now: datetime | None = None) -> Subscription:
        """
        Create the subscription (and usage counters) of a new account.

        Starts the one-time free trial. Idempotent: returns the existing
        subscription if the account already has one.

        Raises:
            NotFound: If user is unknown
        """
        now = now or timezone.now()
        user = get_user(user_id)

        existing = Subscription.objects.filter(user=user).first()
        if existing:
            return existing

        subscription = Subscription.initial(user, now, pointman_settings.FREE_TRIAL_DAYS)
        Gates.subscription_consistency(subscription)

        try:
            with transaction.atomic():
                subscription.save()
                UsageTracking.objects.get_or_create(
                    user=user,
                    defaults={
                        "voice_inputs_reset_at": now,
                        "expenses_reset_at": now,
                        "revenues_reset_at": now,
                    },
                )
        except IntegrityError:
            # Concurrent start for the same account won the insert
            return Subscription.objects.get(user=user)

        logger.info("Subscription started for user=%s (trial until %s)", user.pk, subscription.trial_end)
        return subscription

    @classmethod
    def get(cls, user_id) -> Subscription:
        try:
            return Subscription.objects.get(user_id=user_id)
        except (Subscription.DoesNotExist, ValueError, TypeError):
            raise NotFound("SUBSCRIPTION_NOT_FOUND", user_id=user_id)

    @classmethod
    def entitlement(cls, user_id, now: datetime | None = None) -> Entitlement:
        """Effective plan and limits of a user right now."""
        return resolve(cls.get(user_id), now or timezone.now())

    @classmethod
    def info(cls, user_id, now: datetime | None = None) -> SubscriptionInfo:
        now = now or timezone.now()
        subscription = cls.get(user_id)
        return SubscriptionInfo(
            plan=subscription.plan,
            effective_plan=resolve(subscription, now).effective_plan,
            status=subscription.status,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            auto_renew=subscription.auto_renew,
            is_expired=is_expired(subscription, now),
            days_until_expiry=days_until_expiry(subscription, now),
            trial_running=trial_running(subscription, now),
            trial_used=subscription.trial_used,
            trial_end=subscription.trial_end,
            trial_days_remaining=trial_days_remaining(subscription, now),
        )

    @classmethod
    def upgrade(
        cls,
        user_id,
        plan: str,
        months: int = 1,
        payment_method: str = "",
        now: datetime | None = None,
    ) -> Subscription:
        """
        Move a user to a paid plan for ``months`` calendar months.

        A running trial is left as it is; the paid plan takes over when
        the trial ends. The downgrade check uses the paid plan still
        held (trial ignored), so a lapsed paid plan does not block
        buying a cheaper one.

        Raises:
            NotFound: If the user has no subscription
            GateError: Unknown/free plan, downgrade, duration outside 1-12 months
            ValidationError: Unknown payment method
        """
        now = now or timezone.now()
        if payment_method and payment_method not in PaymentMethod.values:
            raise ValidationError("VALIDATION_FAILED", "Invalid payment method", payment_method=payment_method)

        with transaction.atomic():
            subscription = cls._get_for_update(user_id)
            Gates.plan_transition(held_plan(subscription, now), plan, months)

            changes = {"plan": {"old": subscription.plan, "new": plan}}
            subscription.plan = plan
            subscription.status = SubscriptionStatus.ACTIVE
            subscription.start_date = now
            subscription.end_date = shift_months(now, months)
            if payment_method:
                subscription.payment_method = payment_method

            Gates.subscription_consistency(subscription)
            subscription.save()
            transaction.on_commit(
                lambda: subscription_changed.send(
                    sender=Subscription, subscription=subscription, changes=changes
                )
            )

        logger.info("User=%s upgraded to %s until %s", user_id, plan, subscription.end_date)
        return subscription

    @classmethod
    def cancel(cls, user_id) -> Subscription:
        """
        Cancel a paid subscription, downgrading to free immediately.

        Raises:
            NotFound: If the user has no subscription
            ValidationError: If already on the free plan
        """
        with transaction.atomic():
            subscription = cls._get_for_update(user_id)
            if subscription.plan == Plan.FREE:
                raise ValidationError("ALREADY_FREE", user_id=user_id)

            changes = {"plan": {"old": subscription.plan, "new": Plan.FREE}}
            subscription.plan = Plan.FREE
            subscription.status = SubscriptionStatus.CANCELLED
            subscription.end_date = None
            subscription.auto_renew = False

            Gates.subscription_consistency(subscription)
            subscription.save()
            transaction.on_commit(
                lambda: subscription_changed.send(
                    sender=Subscription, subscription=subscription, changes=changes
                )
            )

        logger.info("User=%s cancelled subscription (%s -> free)", user_id, changes["plan"]["old"])
        return subscription

    @classmethod
    def plans(cls) -> list[PlanDefinition]:
        """Plan catalog, cheapest first."""
        return sorted(PLAN_CATALOG.values(), key=lambda definition: definition.rank)

    @classmethod
    def _get_for_update(cls, user_id) -> Subscription:
        """Subscription with row-level lock. MUST be called inside transaction.atomic()."""
        try:
            return Subscription.objects.select_for_update().get(user_id=user_id)
        except (Subscription.DoesNotExist, ValueError, TypeError):
            raise NotFound("SUBSCRIPTION_NOT_FOUND", user_id=user_id)
