"""
Gate and error tests.

Tests for:
- Gates G1-G5
- Error codes and serialization
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from pointman.exceptions import (
    AlreadyClaimed,
    InsufficientPoints,
    PointmanError,
    QuotaExceeded,
    ValidationError,
)
from pointman.gates import GateError, Gates
from pointman.models import Plan, Subscription


# ═══════════════════════════════════════════════════════════════════
# G1: PositiveAmount
# ═══════════════════════════════════════════════════════════════════


class TestG1PositiveAmount:
    def test_positive_passes(self):
        assert Gates.positive_amount(1).passed

    @pytest.mark.parametrize("value", [0, -1, True, False, 2.0, "3", None])
    def test_rejects(self, value):
        with pytest.raises(GateError, match="G1_PositiveAmount"):
            Gates.positive_amount(value)

    def test_error_names_the_field(self):
        with pytest.raises(GateError) as exc_info:
            Gates.positive_amount(0, field="points")
        assert exc_info.value.data["field"] == "points"
        assert exc_info.value.data["gate"] == "G1_PositiveAmount"

    def test_check_variant(self):
        assert Gates.check_positive_amount(5) is True
        assert Gates.check_positive_amount(-5) is False


# ═══════════════════════════════════════════════════════════════════
# G2: PageBounds
# ═══════════════════════════════════════════════════════════════════


class TestG2PageBounds:
    def test_valid(self):
        assert Gates.page_bounds(1, 100).passed

    def test_max_size_from_settings(self, settings):
        settings.POINTMAN = {"MAX_PAGE_SIZE": 10}
        with pytest.raises(GateError):
            Gates.page_bounds(1, 11)


# ═══════════════════════════════════════════════════════════════════
# G3: PlanTransition
# ═══════════════════════════════════════════════════════════════════


class TestG3PlanTransition:
    def test_upgrade_passes(self):
        assert Gates.plan_transition(Plan.FREE, Plan.TIER3, 12).passed

    def test_same_plan_renewal_passes(self):
        assert Gates.check_plan_transition(Plan.TIER1, Plan.TIER1)

    def test_trial_ranks_as_free(self):
        assert Gates.check_plan_transition("trial", Plan.TIER1)

    def test_downgrade(self):
        with pytest.raises(GateError) as exc_info:
            Gates.plan_transition(Plan.TIER3, Plan.TIER2)
        assert exc_info.value.code == "PLAN_DOWNGRADE_DENIED"

    def test_free_target(self):
        assert Gates.check_plan_transition(Plan.TIER1, Plan.FREE) is False

    def test_duration_bounds(self):
        assert Gates.check_plan_transition(Plan.FREE, Plan.TIER1, 1)
        assert Gates.check_plan_transition(Plan.FREE, Plan.TIER1, 12)
        assert not Gates.check_plan_transition(Plan.FREE, Plan.TIER1, 13)


# ═══════════════════════════════════════════════════════════════════
# G4: SubscriptionConsistency
# ═══════════════════════════════════════════════════════════════════


class TestG4SubscriptionConsistency:
    def test_initial_subscription_passes(self, user):
        now = timezone.now()
        sub = Subscription.initial(user, now, 14)
        assert Gates.subscription_consistency(sub).passed

    def test_free_with_end_date(self):
        now = timezone.now()
        sub = Subscription(plan=Plan.FREE, start_date=now, end_date=now + timedelta(days=1))
        with pytest.raises(GateError, match="free plan cannot have an end date"):
            Gates.subscription_consistency(sub)

    def test_used_trial_active(self):
        now = timezone.now()
        sub = Subscription(
            plan=Plan.FREE,
            start_date=now,
            trial_active=True,
            trial_used=True,
            trial_start=now,
            trial_end=now + timedelta(days=1),
        )
        with pytest.raises(GateError, match="used trial cannot be active"):
            Gates.subscription_consistency(sub)

    def test_lists_every_problem(self):
        now = timezone.now()
        sub = Subscription(
            plan=Plan.FREE,
            start_date=now,
            end_date=now,
            trial_active=True,
            trial_used=True,
            trial_end=None,
        )
        with pytest.raises(GateError) as exc_info:
            Gates.subscription_consistency(sub)
        assert len(exc_info.value.data["problems"]) == 3

    def test_paid_end_before_start(self):
        now = timezone.now()
        sub = Subscription(plan=Plan.TIER1, start_date=now, end_date=now - timedelta(days=1))
        assert Gates.check_subscription_consistency(sub) is False


# ═══════════════════════════════════════════════════════════════════
# G5: KnownEntryType
# ═══════════════════════════════════════════════════════════════════


class TestG5KnownEntryType:
    def test_known(self):
        assert Gates.known_entry_type("earned").passed
        assert Gates.known_entry_type("deducted").passed

    def test_unknown(self):
        with pytest.raises(GateError, match="G5_KnownEntryType"):
            Gates.known_entry_type("bonus")


# ═══════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════


class TestErrors:
    def test_default_code_and_message(self):
        error = AlreadyClaimed(identifier="Ab3dEf7H")
        assert error.code == "RECEIPT_ALREADY_CLAIMED"
        assert error.message == "Receipt already claimed"
        assert str(error) == "RECEIPT_ALREADY_CLAIMED: Receipt already claimed"

    def test_as_dict(self):
        error = InsufficientPoints(available=10, requested=40)
        assert error.as_dict() == {
            "code": "INSUFFICIENT_POINTS",
            "message": "Insufficient points",
            "data": {"available": 10, "requested": 40},
        }

    def test_explicit_message(self):
        error = QuotaExceeded("QUOTA_EXCEEDED", "Expense limit reached")
        assert error.message == "Expense limit reached"

    def test_hierarchy(self):
        assert issubclass(GateError, ValidationError)
        assert issubclass(ValidationError, PointmanError)

    def test_gate_error_prefixes_message(self):
        error = GateError("G9_Example", "went wrong")
        assert error.code == "VALIDATION_FAILED"
        assert error.message == "[G9_Example] went wrong"
