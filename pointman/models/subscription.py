"""Subscription model - plan, status and the one-time free trial.

Derived facts (trial running, expired, days left) are NOT properties
here: they depend on "now" and live as pure functions in
pointman.entitlements, which take the instant explicitly.
"""

from datetime import datetime, timedelta

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Plan(models.TextChoices):
    FREE = "free", _("Free")
    TIER1 = "tier1", _("Personal Plus")
    TIER2 = "tier2", _("Pro")
    TIER3 = "tier3", _("Company")


class SubscriptionStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    INACTIVE = "inactive", _("Inactive")
    CANCELLED = "cancelled", _("Cancelled")
    EXPIRED = "expired", _("Expired")


class PaymentMethod(models.TextChoices):
    VODAFONE_CASH = "vodafone_cash", _("Vodafone Cash")
    INSTAPAY = "instapay", _("InstaPay")
    BANK_TRANSFER = "bank_transfer", _("Bank transfer")


class Subscription(models.Model):
    """
    Subscription of one user account.

    Created with the account (see Subscription.initial), never deleted
    while the account exists. Mutated by SubscriptionService
    (upgrade/cancel) and by the scheduler jobs (expiry).

    Rules (enforced by Gates.subscription_consistency and DB constraints):
    - free plan never carries an end date
    - a used trial is never active again
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscription",
        verbose_name=_("user"),
    )

    plan = models.CharField(
        _("plan"),
        max_length=10,
        choices=Plan.choices,
        default=Plan.FREE,
        db_index=True,
    )
    status = models.CharField(
        _("status"),
        max_length=10,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.ACTIVE,
    )
    start_date = models.DateTimeField(_("start date"))
    end_date = models.DateTimeField(_("end date"), null=True, blank=True, db_index=True)
    auto_renew = models.BooleanField(_("auto renew"), default=False)
    payment_method = models.CharField(
        _("payment method"),
        max_length=20,
        choices=PaymentMethod.choices,
        blank=True,
    )

    # Free trial (one per account lifetime)
    trial_active = models.BooleanField(_("trial active"), default=False, db_index=True)
    trial_start = models.DateTimeField(_("trial start"), null=True, blank=True)
    trial_end = models.DateTimeField(_("trial end"), null=True, blank=True)
    trial_used = models.BooleanField(_("trial used"), default=False)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "pointman_subscription"
        verbose_name = _("subscription")
        verbose_name_plural = _("subscriptions")
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(plan="free") | models.Q(end_date__isnull=True),
                name="pointman_free_plan_has_no_end_date",
            ),
            models.CheckConstraint(
                condition=models.Q(trial_used=False) | models.Q(trial_active=False),
                name="pointman_used_trial_never_active",
            ),
            models.CheckConstraint(
                condition=models.Q(trial_active=False) | models.Q(trial_end__isnull=False),
                name="pointman_active_trial_has_end",
            ),
        ]

    def __str__(self):
        trial = " +trial" if self.trial_active else ""
        return f"{self.user_id}: {self.plan}/{self.status}{trial}"

    @classmethod
    def initial(cls, user, now: datetime, trial_days: int) -> "Subscription":
        """
        Build (unsaved) the subscription of a brand-new account.

        Free plan, active, with the free trial started at ``now``.
        """
        return cls(
            user=user,
            plan=Plan.FREE,
            status=SubscriptionStatus.ACTIVE,
            start_date=now,
            end_date=None,
            auto_renew=False,
            trial_active=True,
            trial_start=now,
            trial_end=now + timedelta(days=trial_days),
            trial_used=False,
        )
