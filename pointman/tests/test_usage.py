"""Tests for quota-gated actions and usage counters."""

from datetime import datetime, timedelta

import pytest
from django.utils import timezone

from pointman.exceptions import NotFound, QuotaExceeded, ValidationError
from pointman.models import Plan, UsageTracking
from pointman.quotas import ActionType, bucket_start, effective_count, is_stale
from pointman.services import SubscriptionService, UsageService


pytestmark = pytest.mark.django_db


def local(*args):
    return timezone.make_aware(datetime(*args))


class TestCheckAndIncrement:
    def test_free_plan_allows_up_to_limit(self, free_subscription, user, now):
        for expected in range(1, 6):
            report = UsageService.check_and_increment(user.pk, ActionType.EXPENSE, now=now)
            assert report.used == expected
        assert report.remaining == 0

    def test_free_plan_blocks_past_limit(self, free_subscription, user, now):
        for _ in range(5):
            UsageService.check_and_increment(user.pk, ActionType.EXPENSE, now=now)

        with pytest.raises(QuotaExceeded) as exc_info:
            UsageService.check_and_increment(user.pk, ActionType.EXPENSE, now=now)

        error = exc_info.value
        assert error.code == "QUOTA_EXCEEDED"
        assert error.data["current_plan"] == "free"
        assert error.data["usage"] == {"used": 5, "limit": 5, "remaining": 0}
        assert error.data["upgrade_to"] == "tier1"
        assert error.message == "Expense limit reached (5 per day). Upgrade to Personal Plus for more."
        assert UsageTracking.objects.get(user=user).expenses == 5

    def test_zero_limit_blocks_immediately(self, free_subscription, user, now):
        with pytest.raises(QuotaExceeded) as exc_info:
            UsageService.check_and_increment(user.pk, ActionType.PROJECT, now=now)
        assert exc_info.value.data["upgrade_to"] == "tier2"

    def test_trial_is_unlimited(self, trial_subscription, user, now):
        for _ in range(10):
            report = UsageService.check_and_increment(user.pk, ActionType.VOICE_INPUT, now=now)
        assert report.used == 10
        assert report.unlimited
        assert report.as_dict() == {"used": 10, "limit": None, "remaining": None}

    def test_lapsed_trial_falls_back_to_free_without_scheduler(self, trial_subscription, user, now):
        later = now + timedelta(days=15)
        for _ in range(3):
            UsageService.check_and_increment(user.pk, ActionType.VOICE_INPUT, now=later)
        with pytest.raises(QuotaExceeded):
            UsageService.check_and_increment(user.pk, ActionType.VOICE_INPUT, now=later)

    def test_stale_daily_counter_restarts(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).update(
            expenses=5, expenses_reset_at=now - timedelta(hours=25)
        )

        report = UsageService.check_and_increment(user.pk, ActionType.EXPENSE, now=now)

        assert report.used == 1
        usage = UsageTracking.objects.get(user=user)
        assert usage.expenses == 1
        assert usage.expenses_reset_at == bucket_start("daily", now)

    def test_counter_inside_bucket_is_kept(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).update(
            expenses=5, expenses_reset_at=bucket_start("daily", now)
        )
        with pytest.raises(QuotaExceeded):
            UsageService.check_and_increment(user.pk, ActionType.EXPENSE, now=now)

    def test_unknown_action(self, free_subscription, user):
        with pytest.raises(ValidationError) as exc_info:
            UsageService.check_and_increment(user.pk, "invoice")
        assert exc_info.value.code == "INVALID_ACTION"

    def test_without_subscription(self, user):
        with pytest.raises(NotFound) as exc_info:
            UsageService.check_and_increment(user.pk, ActionType.EXPENSE)
        assert exc_info.value.code == "SUBSCRIPTION_NOT_FOUND"

    def test_upgrade_raises_ceiling(self, free_subscription, user, now):
        for _ in range(5):
            UsageService.check_and_increment(user.pk, ActionType.EXPENSE, now=now)

        SubscriptionService.upgrade(user.pk, Plan.TIER1, now=now)

        report = UsageService.check_and_increment(user.pk, ActionType.EXPENSE, now=now)
        assert report.used == 6
        assert report.limit == 50


class TestCheckAndReport:
    def test_check_does_not_count(self, free_subscription, user, now):
        assert UsageService.check(user.pk, ActionType.REVENUE, now=now) is True
        assert UsageService.report(user.pk, ActionType.REVENUE, now=now).used == 0

    def test_check_at_limit(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).update(revenues=3, revenues_reset_at=now)
        assert UsageService.check(user.pk, ActionType.REVENUE, now=now) is False

    def test_stats(self, free_subscription, user, now):
        UsageService.check_and_increment(user.pk, ActionType.VOICE_INPUT, now=now)

        stats = UsageService.stats(user.pk, now=now)

        assert stats.effective_plan == Plan.FREE
        assert stats.stored_plan == Plan.FREE
        assert set(stats.usage) == {a.value for a in ActionType}
        assert stats.usage["voice_input"].as_dict() == {"used": 1, "limit": 3, "remaining": 2}

    def test_usage_row_created_lazily(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).delete()
        assert UsageService.report(user.pk, ActionType.EXPENSE, now=now).used == 0
        assert UsageTracking.objects.filter(user=user).exists()


class TestIncrementDecrement:
    def test_increment_ignores_limit(self, free_subscription, user, now):
        assert UsageService.increment(user.pk, ActionType.PARTNER, now=now) == 1
        assert UsageService.increment(user.pk, ActionType.PARTNER, now=now) == 2

    def test_decrement_floors_at_zero(self, free_subscription, user, now):
        UsageService.increment(user.pk, ActionType.PARTNER, now=now)

        assert UsageService.decrement(user.pk, ActionType.PARTNER, now=now) == 0
        assert UsageService.decrement(user.pk, ActionType.PARTNER, now=now) == 0
        assert UsageTracking.objects.get(user=user).partners == 0

    def test_decrement_of_rolled_over_counter_is_noop(self, free_subscription, user, now):
        UsageTracking.objects.filter(user=user).update(
            expenses=4, expenses_reset_at=now - timedelta(days=2)
        )
        assert UsageService.decrement(user.pk, ActionType.EXPENSE, now=now) == 0
        assert UsageTracking.objects.get(user=user).expenses == 4


class TestStaleness:
    def test_daily_bucket_opens_at_local_midnight(self):
        assert bucket_start("daily", local(2026, 1, 15, 18, 45)) == local(2026, 1, 15)
        assert is_stale(local(2026, 1, 14, 23, 59), "daily", local(2026, 1, 15, 0, 0, 1))
        assert not is_stale(local(2026, 1, 15), "daily", local(2026, 1, 15, 23, 59))

    def test_monthly_bucket_opens_on_the_first(self):
        assert bucket_start("monthly", local(2026, 3, 31, 12)) == local(2026, 3, 1)
        assert is_stale(local(2026, 2, 28, 23), "monthly", local(2026, 3, 1, 0, 0, 1))
        assert not is_stale(local(2026, 3, 1), "monthly", local(2026, 3, 31, 23))

    def test_totals_never_stale(self, now):
        assert bucket_start("total", now) is None
        assert not is_stale(now - timedelta(days=900), "total", now)

    def test_effective_count(self, free_subscription, user, now):
        usage = UsageTracking.objects.get(user=user)
        usage.revenues = 2
        usage.revenues_reset_at = bucket_start("monthly", now)
        assert effective_count(usage, ActionType.REVENUE, now) == 2
        usage.revenues_reset_at = bucket_start("monthly", now) - timedelta(seconds=1)
        assert effective_count(usage, ActionType.REVENUE, now) == 0
