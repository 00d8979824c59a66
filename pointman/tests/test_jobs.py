"""Tests for scheduler jobs and the pointman_jobs command."""

from datetime import datetime, timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from pointman import jobs
from pointman.models import Plan, Subscription, SubscriptionStatus, UsageTracking
from pointman.quotas import bucket_start
from pointman.services import SubscriptionService
from pointman.signals import free_trial_expired, subscription_expired
from pointman.utils import shift_months


pytestmark = pytest.mark.django_db


def local(*args):
    return timezone.make_aware(datetime(*args))


@pytest.fixture
def expired_paid(free_subscription, user, now):
    """tier1 bought two months ago for one month."""
    SubscriptionService.upgrade(user.pk, Plan.TIER1, now=now - timedelta(days=62))
    return Subscription.objects.get(user=user)


class TestExpirePaidSubscriptions:
    def test_expires_lapsed_paid_plan(self, expired_paid, now):
        assert jobs.expire_paid_subscriptions(now) == 1

        expired_paid.refresh_from_db()
        assert expired_paid.plan == Plan.FREE
        assert expired_paid.status == SubscriptionStatus.EXPIRED
        assert expired_paid.end_date is None
        assert expired_paid.auto_renew is False

    def test_idempotent(self, expired_paid, now):
        jobs.expire_paid_subscriptions(now)
        assert jobs.expire_paid_subscriptions(now) == 0

    def test_leaves_running_plans(self, free_subscription, user, now):
        SubscriptionService.upgrade(user.pk, Plan.TIER2, now=now)
        assert jobs.expire_paid_subscriptions(now) == 0
        assert Subscription.objects.get(user=user).plan == Plan.TIER2

    def test_sends_signal_with_count(self, expired_paid, now, django_capture_on_commit_callbacks):
        received = []

        def handler(sender, count, **kwargs):
            received.append(count)

        subscription_expired.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                jobs.expire_paid_subscriptions(now)
                jobs.expire_paid_subscriptions(now)
        finally:
            subscription_expired.disconnect(handler)

        assert received == [1]


class TestExpireFreeTrials:
    def test_flips_lapsed_trial(self, free_subscription, now):
        assert jobs.expire_free_trials(now) == 1

        free_subscription.refresh_from_db()
        assert free_subscription.trial_active is False
        assert free_subscription.trial_used is True
        assert free_subscription.plan == Plan.FREE

    def test_running_trial_untouched(self, trial_subscription, now):
        assert jobs.expire_free_trials(now) == 0
        trial_subscription.refresh_from_db()
        assert trial_subscription.trial_active is True

    def test_idempotent(self, free_subscription, now):
        jobs.expire_free_trials(now)
        assert jobs.expire_free_trials(now) == 0

    def test_sends_signal(self, free_subscription, now, django_capture_on_commit_callbacks):
        received = []

        def handler(sender, count, **kwargs):
            received.append(count)

        free_trial_expired.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                jobs.expire_free_trials(now)
        finally:
            free_trial_expired.disconnect(handler)

        assert received == [1]


class TestResetCounters:
    def test_daily_reset(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).update(
            voice_inputs=2,
            voice_inputs_reset_at=now,
            expenses=3,
            expenses_reset_at=now - timedelta(hours=25),
            revenues=1,
            revenues_reset_at=now,
        )

        assert jobs.reset_daily_counters(now) == 1

        usage = UsageTracking.objects.get(user=user)
        assert usage.expenses == 0
        assert usage.expenses_reset_at == bucket_start("daily", now)
        assert usage.voice_inputs == 2
        assert usage.revenues == 1

    def test_daily_reset_idempotent(self, free_subscription, now):
        first = jobs.reset_daily_counters(now)
        assert first == 2
        assert jobs.reset_daily_counters(now) == 0

    def test_monthly_reset(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).update(
            revenues=3, revenues_reset_at=shift_months(now, -1)
        )

        assert jobs.reset_monthly_counters(now) == 1
        assert UsageTracking.objects.get(user=user).revenues == 0
        assert jobs.reset_monthly_counters(now) == 0

    def test_monthly_counter_inside_month_kept(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).update(
            revenues=3, revenues_reset_at=bucket_start("monthly", now)
        )
        assert jobs.reset_monthly_counters(now) == 0

    def test_daily_reset_on_consecutive_midnights(self, free_subscription, user):
        UsageTracking.objects.filter(user=user).update(
            expenses=4, expenses_reset_at=local(2025, 12, 1), voice_inputs_reset_at=local(2025, 12, 1)
        )
        # late run one night, early run the next
        jobs.reset_daily_counters(local(2026, 1, 15, 0, 0, 2))
        UsageTracking.objects.filter(user=user).update(expenses=4)

        assert jobs.reset_daily_counters(local(2026, 1, 16, 0, 0, 1)) == 2
        usage = UsageTracking.objects.get(user=user)
        assert usage.expenses == 0
        assert usage.expenses_reset_at == local(2026, 1, 16)

    def test_monthly_reset_on_consecutive_firsts(self, free_subscription, user):
        UsageTracking.objects.filter(user=user).update(revenues=3, revenues_reset_at=local(2025, 12, 1))
        jobs.reset_monthly_counters(local(2026, 1, 1, 0, 0, 2))
        UsageTracking.objects.filter(user=user).update(revenues=3)

        assert jobs.reset_monthly_counters(local(2026, 2, 1, 0, 0, 1)) == 1
        assert UsageTracking.objects.get(user=user).revenues == 0

    def test_reset_counters_runs_both(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).update(
            revenues_reset_at=shift_months(now, -2)
        )
        assert jobs.reset_counters(now) == 3


class TestPointmanJobsCommand:
    def test_runs_all_jobs(self, free_subscription):
        out = StringIO()
        call_command("pointman_jobs", stdout=out)

        output = out.getvalue()
        assert "expire_free_trials: 1 record(s) affected." in output
        assert "expire_paid_subscriptions: 0 record(s) affected." in output
        assert "reset_daily_counters" in output
        assert "reset_monthly_counters" in output

    def test_runs_named_job(self, free_subscription):
        out = StringIO()
        call_command("pointman_jobs", "expire_free_trials", stdout=out)

        assert "expire_free_trials: 1 record(s) affected." in out.getvalue()
        assert "reset_daily_counters" not in out.getvalue()
        free_subscription.refresh_from_db()
        assert free_subscription.trial_used is True

    def test_list(self, db):
        out = StringIO()
        call_command("pointman_jobs", "--list", stdout=out)
        assert "reset_monthly_counters (monthly)" in out.getvalue()

    def test_unknown_job(self, db):
        with pytest.raises(CommandError, match="Unknown job"):
            call_command("pointman_jobs", "purge_everything")
